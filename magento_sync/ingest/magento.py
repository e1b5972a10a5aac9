"""Magento REST gateway."""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence, TypeVar
from urllib.parse import quote, urlparse

import httpx

from magento_sync.config import Settings
from magento_sync.errors import GatewayError, PreconditionError
from magento_sync.ingest.models import CONFIGURABLE, SIMPLE, SourceCategory, SourceOptionValue, SourceProduct, StockRecord
from magento_sync.utils.dates import to_magento_datetime
from magento_sync.utils.oauth import OAuth1Auth
from magento_sync.utils.rate_limit import RateLimiter
from magento_sync.utils.retry import retry_async

logger = logging.getLogger(__name__)

EXCLUDED_CATEGORIES = "Root Catalog,Default Category"
PLACEHOLDER_RE = re.compile(r"%(\w+)")

T = TypeVar("T")


@dataclass(slots=True)
class Filter:
    field: str
    value: str
    condition_type: str = "eq"


FilterGroups = Sequence[Sequence[Filter]]


def search_criteria_params(
    filter_groups: FilterGroups = (),
    *,
    page: int = 1,
    page_size: int | None = None,
) -> list[tuple[str, str]]:
    """Encode AND-of-OR filter groups as Magento ``searchCriteria`` params."""
    params = [("searchCriteria[currentPage]", str(page))]
    if page_size:
        params.append(("searchCriteria[pageSize]", str(page_size)))
    for group_index, group in enumerate(filter_groups):
        for filter_index, item in enumerate(group):
            prefix = f"searchCriteria[filterGroups][{group_index}][filters][{filter_index}]"
            params.extend(
                [
                    (f"{prefix}[field]", item.field),
                    (f"{prefix}[value]", str(item.value)),
                    (f"{prefix}[condition_type]", item.condition_type or "eq"),
                ]
            )
    return params


def error_message(payload: Any, default: str) -> str:
    """Extract Magento's error message, substituting its placeholders."""
    if not isinstance(payload, dict) or not payload.get("message"):
        return default
    message = str(payload["message"])
    parameters = payload.get("parameters")
    if isinstance(parameters, list):
        parameters = {str(index): value for index, value in enumerate(parameters, start=1)}
    if isinstance(parameters, dict):
        message = PLACEHOLDER_RE.sub(lambda m: str(parameters.get(m.group(1), m.group(0))), message)
    return message


class MagentoClient:
    def __init__(
        self,
        settings: Settings,
        *,
        session: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        concurrency: int = 5,
    ) -> None:
        self.settings = settings
        self.base_url = settings.api_base_url
        self._session = session or httpx.AsyncClient(timeout=30.0, headers={"Accept": "application/json"})
        self._auth = OAuth1Auth(
            settings.consumer_key,
            settings.consumer_secret,
            settings.access_token,
            settings.access_token_secret,
        )
        self._rate_limiter = rate_limiter or RateLimiter(rate=settings.rate)
        self._semaphore = asyncio.Semaphore(concurrency)
        self._lock = asyncio.Lock()
        self._attribute_catalog: dict[int, tuple[str | None, list[SourceOptionValue]]] | None = None
        self._configs_loaded = False
        self.image_prefix = settings.image_prefix
        self.default_store_id: int | None = None
        self.default_currency_code: str | None = None

    async def close(self) -> None:
        await self._session.aclose()

    async def fetch_categories(self, since: str | None = None) -> list[SourceCategory]:
        groups = [[Filter("name", EXCLUDED_CATEGORIES, "nin")]]
        if since:
            groups.append([Filter("updated_at", to_magento_datetime(since), "gt")])
        items = await self._list("/categories/list", groups)
        return _parse("/categories/list", lambda: [SourceCategory.from_payload(item) for item in items])

    async def fetch_products(
        self,
        type_id: str | None = None,
        since: str | None = None,
        filters: FilterGroups | None = None,
    ) -> list[SourceProduct]:
        groups: list[list[Filter]] = []
        if type_id:
            groups.append([Filter("type_id", type_id, "eq")])
        if since:
            groups.append([Filter("updated_at", to_magento_datetime(since), "gt")])
        for group in filters or []:
            groups.append([Filter(f.field, f.value, f.condition_type or "eq") for f in group])

        items = await self._list("/products", groups)
        await self._ensure_image_prefix()
        _parse("/products", lambda: self._prefix_media(items))
        products = _parse("/products", lambda: [SourceProduct.from_payload(item) for item in items])

        if type_id == CONFIGURABLE:
            catalog = await self.fetch_attribute_catalog()
            for product in products:
                for option in product.options:
                    attribute_code, values = catalog.get(option.attribute_id, (None, []))
                    option.attribute_code = attribute_code
                    option.values = list(values)
        elif type_id == SIMPLE:
            stocks = await asyncio.gather(*(self.fetch_stock(product.sku) for product in products))
            for product, stock in zip(products, stocks):
                product.stock = stock
        logger.info("Fetched %s %s products", len(products), type_id or "")
        return products

    async def fetch_variants_by_ids(self, ids: Iterable[int]) -> list[SourceProduct]:
        ids = [str(i) for i in ids]
        if not ids:
            return []
        return await self.fetch_products(SIMPLE, None, [[Filter("entity_id", ",".join(ids), "in")]])

    async def fetch_option_value_set(self, attribute_code: str) -> list[SourceOptionValue]:
        path = f"/products/attributes/{quote(attribute_code, safe='')}"
        data = await self._get_mapping(path)
        return _parse(path, lambda: _option_values(data.get("options")))

    async def fetch_attribute_catalog(self) -> dict[int, tuple[str | None, list[SourceOptionValue]]]:
        """Attribute id -> (attribute code, option values), cached per client."""
        async with self._lock:
            if self._attribute_catalog is None:
                items = await self._list("/products/attributes", [])
                self._attribute_catalog = _parse(
                    "/products/attributes",
                    lambda: {
                        item["attribute_id"]: (item.get("attribute_code"), _option_values(item.get("options")))
                        for item in items
                        if "attribute_id" in item
                    },
                )
        return self._attribute_catalog

    async def fetch_stock(self, sku: str) -> StockRecord:
        path = f"/stockItems/{quote(sku, safe='')}"
        data = await self._get_mapping(path)
        return _parse(path, lambda: StockRecord.from_payload(data))

    async def retrieve_default_configs(self) -> None:
        if self._configs_loaded:
            return
        data = await self._get_json("/store/storeConfigs")
        if isinstance(data, list):
            default_store = next(
                (store for store in data if isinstance(store, dict) and store.get("code") == "default"),
                data[0] if data else {},
            )
        else:
            default_store = data
        if not isinstance(default_store, dict):
            raise GatewayError("Malformed response from /store/storeConfigs: expected a store object")
        if not self.image_prefix:
            self.image_prefix = f"{default_store.get('base_media_url', '')}catalog/product"
        self.default_store_id = default_store.get("id")
        self.default_currency_code = default_store.get("default_display_currency_code") or default_store.get(
            "base_currency_code"
        )
        self._configs_loaded = True

    async def fetch_render_images(self, products: Sequence[SourceProduct]) -> dict[int, list[str]]:
        """Storefront render images per product id."""
        if not self.default_store_id or not self.default_currency_code:
            raise PreconditionError("Default Store ID and Default Currency Code must be set first.")
        if not products:
            return {}
        params = search_criteria_params([[Filter("entity_id", ",".join(str(p.id) for p in products), "in")]])
        params.extend([("storeId", str(self.default_store_id)), ("currencyCode", self.default_currency_code)])
        data = await self._get_mapping("/products-render-info", params)
        return _parse("/products-render-info", lambda: _render_images(products, data.get("items") or []))

    def _prefix_media(self, items: list[dict[str, Any]]) -> None:
        for item in items:
            for entry in item.get("media_gallery_entries") or []:
                entry["url"] = f"{self.image_prefix}{entry.get('file', '')}"

    async def _ensure_image_prefix(self) -> None:
        if self.image_prefix:
            return
        async with self._lock:
            await self.retrieve_default_configs()

    async def _list(self, path: str, groups: FilterGroups) -> list[dict[str, Any]]:
        page_size = self.settings.page_size
        items: list[dict[str, Any]] = []
        page = 1
        while True:
            data = await self._get_mapping(path, search_criteria_params(groups, page=page, page_size=page_size))
            batch = data.get("items") or []
            if not isinstance(batch, list):
                raise GatewayError(f"Malformed response from {path}: items is not a list")
            items.extend(batch)
            total = data.get("total_count")
            if not batch or total is None or len(items) >= int(total) or len(batch) < page_size:
                break
            page += 1
        return items

    async def _get_mapping(self, path: str, params: list[tuple[str, str]] | None = None) -> dict[str, Any]:
        data = await self._get_json(path, params)
        if not isinstance(data, dict):
            raise GatewayError(f"Malformed response from {path}: expected an object, got {type(data).__name__}")
        return data

    async def _get_json(self, path: str, params: list[tuple[str, str]] | None = None) -> Any:
        response = await self._request("GET", f"{self.base_url}{path}", params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise GatewayError(f"Malformed response from {path}: {exc}", response.status_code) from exc

    async def _request(self, method: str, url: str, *, params: list[tuple[str, str]] | None = None) -> httpx.Response:
        host = urlparse(url).netloc
        async with self._semaphore:
            await self._rate_limiter.wait_for_host(host)
            try:
                response = await retry_async(self._session.request)(method, url, params=params, auth=self._auth)
            except httpx.HTTPError as exc:
                raise GatewayError(str(exc) or "An error occurred while sending the request.") from exc
        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            message = error_message(payload, f"HTTP {response.status_code} from {url}")
            logger.warning("Magento request failed: %s", message)
            raise GatewayError(message, response.status_code)
        return response


def _parse(path: str, build: Callable[[], T]) -> T:
    """Run a payload parser, reporting unexpected shapes as gateway errors."""
    try:
        return build()
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise GatewayError(f"Malformed response from {path}: {exc!r}") from exc


def _option_values(options: Iterable[dict[str, Any]] | None) -> list[SourceOptionValue]:
    return [
        SourceOptionValue(label=str(option.get("label") or ""), value=str(option["value"]))
        for option in options or []
        if str(option.get("value") or "")
    ]


def _render_images(products: Sequence[SourceProduct], items: Iterable[dict[str, Any]]) -> dict[int, list[str]]:
    rendered = {item.get("id"): item for item in items}
    images: dict[int, list[str]] = {}
    for product in products:
        item = rendered.get(product.id)
        if item is not None:
            images[product.id] = [image["url"] for image in item.get("images") or [] if image.get("url")]
    return images
