"""
Client for the remote chart data endpoint.
"""

import logging
from typing import Any, Dict

from ..core.exceptions import DataFetchFailure
from ..core.interfaces import RPCClientInterface
from ..core.models import SeriesData, SourceSettings


logger = logging.getLogger(__name__)


class ChartDataClient:
    """Fetches series data for a chart from the method named by its source.

    Holds no cache of its own: ``bypass_cache`` is forwarded to the endpoint
    as ``refresh`` and the endpoint decides whether to recompute.
    """

    def __init__(self, rpc: RPCClientInterface):
        self.rpc = rpc

    async def fetch(
        self,
        settings: SourceSettings,
        chart_name: str,
        filters: Dict[str, Any],
        bypass_cache: bool = False
    ) -> SeriesData:
        args = {
            "chart_name": chart_name,
            "filters": dict(filters or {}),
            "refresh": bool(bypass_cache)
        }
        logger.debug(f"Fetching data for chart '{chart_name}' via {settings.method_path} (refresh={bypass_cache})")

        try:
            result = await self.rpc.call(settings.method_path, args)
        except Exception as e:
            raise DataFetchFailure(
                str(e),
                error_code="DATA_FETCH_FAILED",
                context={"chart_name": chart_name, "method_path": settings.method_path}
            ) from e

        if isinstance(result, SeriesData):
            return result
        if result is not None and not isinstance(result, dict):
            raise DataFetchFailure(
                f"{settings.method_path} returned {type(result).__name__}, expected a dataset",
                error_code="INVALID_DATASET",
                context={"chart_name": chart_name}
            )
        return SeriesData.from_dict(result)
