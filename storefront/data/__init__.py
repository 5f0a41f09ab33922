from storefront.data.source import DataSource, FilterSpec, UpstreamError
from storefront.data.memory import InMemoryDataSource

__all__ = ["DataSource", "FilterSpec", "UpstreamError", "InMemoryDataSource"]
