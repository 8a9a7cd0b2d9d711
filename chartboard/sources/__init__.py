# Data source settings, data fetching and RPC transports

from .rpc import HTTPRPCClient, LocalRPCClient
from .registry import SourceRegistry
from .data_client import ChartDataClient

__all__ = [
    'HTTPRPCClient',
    'LocalRPCClient',
    'SourceRegistry',
    'ChartDataClient'
]
