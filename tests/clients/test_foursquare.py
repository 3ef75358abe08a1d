"""Tests for the Foursquare Places client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from visitvibe.clients.categories import FOURSQUARE_FOOD_CATEGORY_IDS
from visitvibe.clients.foursquare import (
    FoursquareClient,
    _price_tier,
    generate_photo_urls,
    parse_details,
    parse_place,
)
from visitvibe.clients.resilience import AuthError, SchemaChangeError
from visitvibe.models.enums import PlacesProvider


def _place(**overrides) -> dict:
    data = {
        "fsq_id": "4b5a3c9ef964a520a4b628e3",
        "name": "Tartine Bakery",
        "location": {"formatted_address": "600 Guerrero St, San Francisco, CA"},
        "geocodes": {"main": {"latitude": 37.7614, "longitude": -122.4241}},
        "categories": [{"id": 13002, "name": "Bakery"}, {"id": 13032, "name": "Café"}],
        "distance": 120,
    }
    data.update(overrides)
    return data


def _mock_httpx_client(*, response: MagicMock) -> MagicMock:
    mock_client = AsyncMock()
    mock_client.get.return_value = response
    mock_client.__aenter__ = AsyncMock(return_value=mock_client)
    mock_client.__aexit__ = AsyncMock(return_value=False)
    return mock_client


def _make_response(*, status_code: int = 200, json_data: dict | None = None) -> MagicMock:
    resp = MagicMock()
    resp.status_code = status_code
    resp.json.return_value = json_data if json_data is not None else {}
    return resp


class TestHelpers:
    def test_generate_photo_urls(self):
        photos = [
            {"prefix": "https://fastly.4sqi.net/img/general/", "suffix": "/a.jpg"},
            {"prefix": "https://fastly.4sqi.net/img/general/"},
        ]
        assert generate_photo_urls(photos) == [
            "https://fastly.4sqi.net/img/general/300x300/a.jpg"
        ]

    def test_generate_photo_urls_custom_size(self):
        urls = generate_photo_urls([{"prefix": "p/", "suffix": "/s"}], size="original")
        assert urls == ["p/original/s"]

    @pytest.mark.parametrize(
        "price,expected",
        [(2, 2), ({"tier": 3}, 3), (0, None), (5, None), (None, None), ("2", None)],
    )
    def test_price_tier(self, price, expected):
        assert _price_tier(price) == expected


class TestParsePlace:
    def test_maps_fields(self):
        venue = parse_place(_place())
        assert venue.id == "4b5a3c9ef964a520a4b628e3"
        assert venue.address == "600 Guerrero St, San Francisco, CA"
        assert venue.coordinates.lat == 37.7614
        assert venue.category == ["Bakery", "Café"]
        assert venue.distance_m == 120.0
        assert venue.source == PlacesProvider.FOURSQUARE

    def test_falls_back_to_street_address(self):
        venue = parse_place(_place(location={"address": "600 Guerrero St"}))
        assert venue.address == "600 Guerrero St"

    def test_missing_geocodes_is_unknown(self):
        venue = parse_place(_place(geocodes={}))
        assert venue.coordinates.is_unknown


class TestParseDetails:
    def test_display_hours(self):
        venue = parse_details(_place(hours={"display": "Mon-Sun 8:00-19:00"}))
        assert venue.hours == "Mon-Sun 8:00-19:00"

    def test_open_now_hours(self):
        assert parse_details(_place(hours={"open_now": True})).hours == "Open now"

    def test_no_hours(self):
        assert parse_details(_place()).hours == "Hours not available"

    def test_details_fields(self):
        venue = parse_details(_place(
            tel="(415) 487-2600",
            website="https://tartinebakery.com",
            price=2,
            rating=9.1,
            photos=[{"prefix": "p/", "suffix": "/s.jpg"}],
        ))
        assert venue.phone_number == "(415) 487-2600"
        assert venue.website == "https://tartinebakery.com"
        assert venue.price_level == 2
        assert venue.rating == 9.1
        assert venue.photos == ["p/300x300/s.jpg"]


class TestSearchNearby:
    async def test_sends_food_categories_and_parses(self):
        resp = _make_response(json_data={"results": [_place(), {"name": "no id"}]})
        mock_client = _mock_httpx_client(response=resp)
        with patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client):
            venues = await FoursquareClient("fsq-key").search_nearby(37.76, -122.42, 800)

        assert [v.name for v in venues] == ["Tartine Bakery"]
        call = mock_client.get.call_args
        assert call.kwargs["headers"]["Authorization"] == "fsq-key"
        params = call.kwargs["params"]
        assert params["ll"] == "37.76,-122.42"
        assert params["radius"] == 800
        assert params["categories"] == ",".join(FOURSQUARE_FOOD_CATEGORY_IDS)
        assert params["sort"] == "DISTANCE"
        assert "query" not in params

    async def test_generic_restaurant_query_not_sent(self):
        mock_client = _mock_httpx_client(response=_make_response(json_data={"results": []}))
        with patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client):
            await FoursquareClient("k").search_nearby(1, 2, query="Restaurant")
        assert "query" not in mock_client.get.call_args.kwargs["params"]

    async def test_specific_query_sent(self):
        mock_client = _mock_httpx_client(response=_make_response(json_data={"results": []}))
        with patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client):
            await FoursquareClient("k").search_nearby(1, 2, query="ramen")
        assert mock_client.get.call_args.kwargs["params"]["query"] == "ramen"

    async def test_missing_results_is_schema_change(self):
        mock_client = _mock_httpx_client(response=_make_response(json_data={"venues": []}))
        with (
            patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client),
            pytest.raises(SchemaChangeError),
        ):
            await FoursquareClient("k").search_nearby(1, 2)

    async def test_unauthorized_is_auth_error(self):
        mock_client = _mock_httpx_client(response=_make_response(status_code=401))
        with (
            patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client),
            pytest.raises(AuthError),
        ):
            await FoursquareClient("bad").search_nearby(1, 2)


class TestAutocomplete:
    async def test_skips_results_without_id(self):
        resp = _make_response(json_data={"results": [
            {
                "type": "place",
                "text": {"primary": "Tartine Bakery", "secondary": "600 Guerrero St"},
                "place": {"fsq_id": "abc123"},
            },
            {"type": "search", "text": {"primary": "tartine"}},
        ]})
        mock_client = _mock_httpx_client(response=resp)
        with patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client):
            venues = await FoursquareClient("k").autocomplete("tart", 37.7, -122.4)

        assert len(venues) == 1
        assert venues[0].id == "abc123"
        assert venues[0].name == "Tartine Bakery"
        assert venues[0].address == "600 Guerrero St"
        assert venues[0].coordinates.is_unknown


class TestGetDetails:
    async def test_returns_parsed_details(self):
        resp = _make_response(json_data=_place(hours={"display": "Daily"}))
        mock_client = _mock_httpx_client(response=resp)
        with patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client):
            venue = await FoursquareClient("k").get_details("4b5a3c9ef964a520a4b628e3")
        assert venue is not None
        assert venue.hours == "Daily"
        assert mock_client.get.call_args.args[0].endswith("/places/4b5a3c9ef964a520a4b628e3")

    async def test_empty_body_returns_none(self):
        mock_client = _mock_httpx_client(response=_make_response(json_data={}))
        with patch("visitvibe.clients.foursquare.httpx.AsyncClient", return_value=mock_client):
            assert await FoursquareClient("k").get_details("x") is None
