import dataclasses

import httpx
import pytest
import respx
from factories import category_payload, media, product_payload, source_product
from oauthlib.oauth1.rfc5849 import signature

from magento_sync.errors import GatewayError, PreconditionError
from magento_sync.ingest.magento import Filter, MagentoClient, error_message, search_criteria_params
from magento_sync.utils.oauth import OAuth1Auth

API = "https://shop.test/rest/default/V1"
STORE_CONFIGS = [
    {"id": 0, "code": "admin", "base_media_url": "https://admin.test/media/"},
    {
        "id": 1,
        "code": "default",
        "base_media_url": "https://shop.test/media/",
        "base_currency_code": "USD",
        "default_display_currency_code": "EUR",
    },
]


def page(items, total=None):
    return httpx.Response(200, json={"items": items, "total_count": len(items) if total is None else total})


def test_search_criteria_params_encode_filter_groups():
    params = dict(
        search_criteria_params(
            [[Filter("type_id", "simple")], [Filter("sku", "A", "like"), Filter("sku", "B", None)]],
            page=2,
            page_size=50,
        )
    )
    assert params["searchCriteria[currentPage]"] == "2"
    assert params["searchCriteria[pageSize]"] == "50"
    assert params["searchCriteria[filterGroups][0][filters][0][field]"] == "type_id"
    assert params["searchCriteria[filterGroups][0][filters][0][condition_type]"] == "eq"
    assert params["searchCriteria[filterGroups][1][filters][1][value]"] == "B"
    assert params["searchCriteria[filterGroups][1][filters][1][condition_type]"] == "eq"
    assert params["searchCriteria[filterGroups][1][filters][0][condition_type]"] == "like"


def test_error_message_substitutes_parameters():
    assert error_message({"message": 'The "%1" attribute is missing.', "parameters": ["color"]}, "x") == (
        'The "color" attribute is missing.'
    )
    assert error_message({"message": "%fieldName is required", "parameters": {"fieldName": "sku"}}, "x") == (
        "sku is required"
    )
    assert error_message(None, "fallback") == "fallback"


def test_oauth_header_carries_a_verifiable_hmac_sha256_signature():
    auth = OAuth1Auth("ck", "cs", "at", "ats")
    request = httpx.Request("GET", "https://shop.test/rest/V1/products", params={"b": "x y", "a": "1"})
    header = next(auth.auth_flow(request)).headers["Authorization"]

    assert header.startswith("OAuth ")
    oauth = dict(signature.collect_parameters(headers={"Authorization": header}, exclude_oauth_signature=False))
    assert oauth["oauth_consumer_key"] == "ck"
    assert oauth["oauth_token"] == "at"
    assert oauth["oauth_signature_method"] == "HMAC-SHA256"

    params = signature.collect_parameters(uri_query=request.url.query.decode(), headers={"Authorization": header})
    base = signature.signature_base_string(
        "GET", signature.base_string_uri(str(request.url)), signature.normalize_parameters(params)
    )
    assert oauth["oauth_signature"] == signature.sign_hmac_sha256(base, "cs", "ats")
    assert oauth["oauth_signature"] != signature.sign_hmac_sha256(base, "other", "ats")


@pytest.mark.asyncio
async def test_fetch_categories_excludes_roots_and_filters_since(settings):
    async with respx.mock(assert_all_called=True) as router:
        route = router.get(f"{API}/categories/list").mock(
            return_value=page([category_payload(3, "Shirts", url_key="shirts", position=2)])
        )
        client = MagentoClient(settings)
        categories = await client.fetch_categories("2026-10-19T12:00:00+00:00")
        await client.close()

    assert [(c.id, c.name, c.url_key, c.position) for c in categories] == [(3, "Shirts", "shirts", 2)]
    request = route.calls.last.request
    params = request.url.params
    assert params["searchCriteria[filterGroups][0][filters][0][value]"] == "Root Catalog,Default Category"
    assert params["searchCriteria[filterGroups][0][filters][0][condition_type]"] == "nin"
    assert params["searchCriteria[filterGroups][1][filters][0][value]"] == "2026-10-19 12:00:00"
    assert params["searchCriteria[filterGroups][1][filters][0][condition_type]"] == "gt"
    assert request.headers["Authorization"].startswith("OAuth ")
    assert 'oauth_signature_method="HMAC-SHA256"' in request.headers["Authorization"]


@pytest.mark.asyncio
async def test_fetch_products_paginates(settings):
    items = [product_payload(i, f"SKU-{i}", f"Product {i}", type_id="virtual") for i in range(1, 4)]
    settings_with_prefix = dataclasses.replace(settings, image_prefix="https://cdn.test")
    async with respx.mock(assert_all_called=True) as router:
        route = router.get(f"{API}/products").mock(side_effect=[page(items[:2], total=3), page(items[2:], total=3)])
        client = MagentoClient(settings_with_prefix)
        products = await client.fetch_products()
        await client.close()

    assert [p.id for p in products] == [1, 2, 3]
    assert [call.request.url.params["searchCriteria[currentPage]"] for call in route.calls] == ["1", "2"]


@pytest.mark.asyncio
async def test_configurable_products_get_option_values_and_prefixed_media(settings):
    configurable = product_payload(
        100,
        "TEE",
        "Tee",
        type_id="configurable",
        media_entries=[media("/t/e/tee.jpg", "thumbnail", prefix=None)],
        options=[{"id": 7, "attribute_id": 93, "label": "Color", "values": [{"value_index": 49}]}],
        links=[101],
    )
    attributes = [
        {
            "attribute_id": 93,
            "attribute_code": "color",
            "options": [{"label": " ", "value": ""}, {"label": "Red", "value": "49"}],
        },
        {"attribute_id": 94, "attribute_code": "size", "options": []},
    ]
    async with respx.mock(assert_all_called=True) as router:
        products_route = router.get(f"{API}/products").mock(return_value=page([configurable]))
        router.get(f"{API}/store/storeConfigs").mock(return_value=httpx.Response(200, json=STORE_CONFIGS))
        router.get(f"{API}/products/attributes").mock(return_value=page(attributes))
        client = MagentoClient(settings)
        [product] = await client.fetch_products("configurable", None, [[Filter("sku", "TEE", None)]])
        await client.close()

    assert product.media[0].url == "https://shop.test/media/catalog/product/t/e/tee.jpg"
    [option] = product.options
    assert option.attribute_code == "color"
    assert [(v.label, v.value) for v in option.values] == [("Red", "49")]
    assert product.links == [101]
    params = products_route.calls.last.request.url.params
    assert params["searchCriteria[filterGroups][0][filters][0][value]"] == "configurable"
    assert params["searchCriteria[filterGroups][1][filters][0][field]"] == "sku"
    assert client.default_store_id == 1
    assert client.default_currency_code == "EUR"


@pytest.mark.asyncio
async def test_variants_by_ids_carry_stock(settings):
    variant = product_payload(101, "TEE-RED", "Tee Red", price=19.99)
    async with respx.mock(assert_all_called=True) as router:
        route = router.get(f"{API}/products").mock(return_value=page([variant]))
        router.get(f"{API}/store/storeConfigs").mock(return_value=httpx.Response(200, json=STORE_CONFIGS))
        router.get(f"{API}/stockItems/TEE-RED").mock(
            return_value=httpx.Response(200, json={"qty": 4.0, "backorders": 1, "manage_stock": False})
        )
        client = MagentoClient(settings)
        [product] = await client.fetch_variants_by_ids([101, 102])
        assert await client.fetch_variants_by_ids([]) == []
        await client.close()

    assert (product.stock.qty, product.stock.backorders, product.stock.manage_stock) == (4.0, 1, False)
    params = route.calls.last.request.url.params
    assert params["searchCriteria[filterGroups][1][filters][0][value]"] == "101,102"
    assert params["searchCriteria[filterGroups][1][filters][0][condition_type]"] == "in"


@pytest.mark.asyncio
async def test_fetch_option_value_set_drops_empty_values(settings):
    async with respx.mock(assert_all_called=True) as router:
        router.get(f"{API}/products/attributes/color").mock(
            return_value=httpx.Response(200, json={"options": [{"label": " ", "value": ""}, {"label": "Red", "value": "49"}]})
        )
        client = MagentoClient(settings)
        values = await client.fetch_option_value_set("color")
        await client.close()
    assert [(v.label, v.value) for v in values] == [("Red", "49")]


@pytest.mark.asyncio
async def test_upstream_errors_become_gateway_errors(settings):
    async with respx.mock() as router:
        router.get(f"{API}/categories/list").mock(
            return_value=httpx.Response(400, json={"message": 'Field "%1" is unknown.', "parameters": ["foo"]})
        )
        router.get(f"{API}/products/attributes/x").mock(return_value=httpx.Response(200, text="<html>"))
        client = MagentoClient(settings)
        with pytest.raises(GatewayError) as excinfo:
            await client.fetch_categories()
        assert excinfo.value.message == 'Field "foo" is unknown.'
        assert excinfo.value.status_code == 400
        with pytest.raises(GatewayError):
            await client.fetch_option_value_set("x")
        await client.close()


@pytest.mark.asyncio
async def test_render_images_require_default_store(settings):
    products = []
    client = MagentoClient(settings)
    with pytest.raises(PreconditionError):
        await client.fetch_render_images(products)

    async with respx.mock(assert_all_called=True) as router:
        router.get(f"{API}/store/storeConfigs").mock(return_value=httpx.Response(200, json=STORE_CONFIGS))
        render = router.get(f"{API}/products-render-info").mock(
            return_value=page([{"id": 100, "images": [{"url": "https://shop.test/cache/tee.jpg", "code": "base"}]}])
        )
        await client.retrieve_default_configs()
        images = await client.fetch_render_images([source_product(100, "TEE", "Tee"), source_product(5, "MUG", "Mug")])
        await client.close()

    assert images == {100: ["https://shop.test/cache/tee.jpg"]}
    params = render.calls.last.request.url.params
    assert params["storeId"] == "1"
    assert params["currencyCode"] == "EUR"
    assert params["searchCriteria[filterGroups][0][filters][0][value]"] == "100,5"



@pytest.mark.asyncio
async def test_malformed_payloads_become_gateway_errors(settings):
    client = MagentoClient(dataclasses.replace(settings, image_prefix="https://cdn.test"))
    async with respx.mock() as router:
        router.get(f"{API}/products").mock(return_value=page([{"sku": "NOID"}]))
        router.get(f"{API}/categories/list").mock(return_value=httpx.Response(200, json=[]))
        router.get(f"{API}/stockItems/MUG").mock(return_value=httpx.Response(200, json=["qty"]))
        router.get(f"{API}/products/attributes").mock(
            return_value=httpx.Response(200, json={"items": {"attribute_id": 93}, "total_count": 1})
        )

        with pytest.raises(GatewayError, match="Malformed response from /products"):
            await client.fetch_products()
        with pytest.raises(GatewayError, match="Malformed response from /categories/list"):
            await client.fetch_categories()
        with pytest.raises(GatewayError, match="Malformed response from /stockItems/MUG"):
            await client.fetch_stock("MUG")
        with pytest.raises(GatewayError, match="items is not a list"):
            await client.fetch_attribute_catalog()
        await client.close()
