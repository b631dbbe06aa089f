from app.strategies.fetchers.address_guard import AddressGuard
from app.strategies.fetchers.httpx_fetcher import HttpxPageFetcher

__all__ = ["AddressGuard", "HttpxPageFetcher"]
