"""Logistics layer: provider/consumer network, demand matching, supply requests."""

from colony.logistics.matcher import DemandMatcher
from colony.logistics.network import LogisticsNetwork
from colony.logistics.supply import SupplyService

__all__ = ["DemandMatcher", "LogisticsNetwork", "SupplyService"]
