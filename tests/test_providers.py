"""
Tests for the Kakao and Naver providers and the retrying HTTP transport.

Provider HTTP is served by httpx.MockTransport.
"""
import asyncio
from typing import Callable, List

import httpx
import pytest

from midway.config import Settings
from midway.errors import (
    InvalidCoordinates,
    NetworkError,
    NoAddressFound,
    NoRouteFound,
    ProviderError,
    RateLimited,
    ValidationError,
)
from midway.geo.types import Coordinate
from midway.providers.base import RouteOption
from midway.providers.factory import ProviderKind, build_providers
from midway.providers.http import RetryTransport
from midway.providers.kakao import KakaoMapProvider
from midway.providers.naver import NaverMapProvider

A = Coordinate(37.5665, 126.978)
B = Coordinate(37.4979, 127.0276)


def make_settings(**overrides) -> Settings:
    values = dict(
        _env_file=None,
        kakao_rest_api_key="kakao-key",
        naver_maps_client_id="maps-id",
        naver_maps_client_secret="maps-secret",
        naver_search_client_id="search-id",
        naver_search_client_secret="search-secret",
        http_retry_delay_seconds=0,
    )
    values.update(overrides)
    return Settings(**values)


class Recorder:
    """MockTransport handler that records requests and replays responses."""

    def __init__(self, *responses):
        self.responses: List = list(responses)
        self.requests: List[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, Exception):
            raise response
        # Fresh copy so a replayed response is never one already closed.
        return httpx.Response(
            response.status_code,
            headers=response.headers,
            content=response.content,
        )


def run(coro_factory: Callable, provider):
    async def go():
        try:
            return await coro_factory()
        finally:
            await provider.aclose()
    return asyncio.run(go())


# ── Kakao ───────────────────────────────────────────────────────


KAKAO_ROUTE = {
    "routes": [{
        "result_code": 0,
        "result_msg": "길찾기 성공",
        "summary": {"distance": 12345, "duration": 1500},
        "sections": [
            {"roads": [
                {"vertexes": [126.978, 37.5665, 126.99, 37.55]},
                {"vertexes": [127.01, 37.52]},
            ]},
            {"roads": [{"vertexes": [127.0276, 37.4979]}]},
        ],
    }]
}


class TestKakaoDirections:
    def test_parses_route(self):
        handler = Recorder(httpx.Response(200, json=KAKAO_ROUTE))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        route = run(lambda: provider.get_route(A, B), provider)

        assert route.distance == 12345
        assert route.duration == 1500
        assert [(p.lat, p.lng) for p in route.path] == [
            (37.5665, 126.978), (37.55, 126.99), (37.52, 127.01), (37.4979, 127.0276),
        ]
        assert route.path[0].distance == 0
        assert route.path[0].duration == 0

        request = handler.requests[0]
        assert request.headers["Authorization"] == "KakaoAK kakao-key"
        assert request.url.params["origin"] == "126.978,37.5665"
        assert request.url.params["destination"] == "127.0276,37.4979"
        assert request.url.params["priority"] == "RECOMMEND"

    def test_route_option_maps_to_priority(self):
        handler = Recorder(httpx.Response(200, json=KAKAO_ROUTE))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        run(lambda: provider.get_route(A, B, RouteOption.fast), provider)
        assert handler.requests[0].url.params["priority"] == "FAST"

    def test_result_code_error_is_no_route(self):
        body = {"routes": [{"result_code": 104, "result_msg": "출발지와 도착지가 너무 가까움"}]}
        provider = KakaoMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        with pytest.raises(NoRouteFound) as exc:
            run(lambda: provider.get_route(A, B), provider)
        assert "너무 가까움" in exc.value.message

    def test_invalid_coordinates_rejected_before_request(self):
        handler = Recorder(httpx.Response(200, json=KAKAO_ROUTE))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        with pytest.raises(InvalidCoordinates):
            run(lambda: provider.get_route(Coordinate(120, 0), B), provider)
        assert handler.requests == []


class TestKakaoGeocoding:
    def test_geocode(self):
        body = {"documents": [{"x": "126.978", "y": "37.5665"}]}
        handler = Recorder(httpx.Response(200, json=body))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        coord = run(lambda: provider.geocode_address("서울 중구 세종대로 110"), provider)

        assert coord == Coordinate(37.5665, 126.978)
        assert handler.requests[0].url.path == "/v2/local/search/address.json"
        assert handler.requests[0].url.params["query"] == "서울 중구 세종대로 110"

    def test_geocode_no_match(self):
        provider = KakaoMapProvider(
            make_settings(),
            transport=httpx.MockTransport(Recorder(httpx.Response(200, json={"documents": []}))),
        )
        with pytest.raises(NoAddressFound):
            run(lambda: provider.geocode_address("없는 주소"), provider)

    def test_geocode_empty_address(self):
        provider = KakaoMapProvider(make_settings())
        with pytest.raises(ValidationError):
            run(lambda: provider.geocode_address(" "), provider)

    def test_reverse_geocode_prefers_road_address(self):
        body = {"documents": [{
            "road_address": {"address_name": "서울 중구 세종대로 110"},
            "address": {"address_name": "서울 중구 태평로1가 31"},
        }]}
        handler = Recorder(httpx.Response(200, json=body))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        assert run(lambda: provider.reverse_geocode(A), provider) == "서울 중구 세종대로 110"
        assert handler.requests[0].url.params["x"] == "126.978"

    def test_reverse_geocode_falls_back_to_lot_address(self):
        body = {"documents": [{"road_address": None, "address": {"address_name": "서울 중구 태평로1가 31"}}]}
        provider = KakaoMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        assert run(lambda: provider.reverse_geocode(A), provider) == "서울 중구 태평로1가 31"


def kakao_page(ids, is_end):
    return httpx.Response(200, json={
        "meta": {"is_end": is_end},
        "documents": [
            {
                "id": str(i),
                "place_name": f"다이소 {i}호점",
                "address_name": f"주소 {i}",
                "road_address_name": f"도로명 {i}",
                "phone": "02-000-0000",
                "x": "127.0",
                "y": "37.5",
            }
            for i in ids
        ],
    })


class TestKakaoSearch:
    def test_pages_until_is_end(self):
        handler = Recorder(kakao_page(range(15), False), kakao_page(range(15, 20), True))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        places = run(lambda: provider.search_places("다이소"), provider)

        assert len(places) == 20
        assert len(handler.requests) == 2
        assert [r.url.params["page"] for r in handler.requests] == ["1", "2"]
        first = places[0]
        assert first.id == "kakao-0"
        assert first.name == "다이소 0호점"
        assert first.category == "다이소"
        assert first.road_address == "도로명 0"
        assert first.coordinates == Coordinate(37.5, 127.0)

    def test_stops_after_three_pages(self):
        handler = Recorder(kakao_page(range(15), False))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        places = run(lambda: provider.search_places("다이소"), provider)
        assert len(handler.requests) == 3
        assert len(places) == 45

    def test_center_sorts_by_distance(self):
        handler = Recorder(kakao_page(range(3), True))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        run(lambda: provider.search_places("다이소", center=A, radius_m=2000), provider)
        params = handler.requests[0].url.params
        assert params["sort"] == "distance"
        assert params["radius"] == "2000"
        assert params["x"] == "126.978"

    def test_search_by_region_keeps_bare_category(self):
        handler = Recorder(kakao_page(range(2), True))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        places = run(lambda: provider.search_places_by_region("다이소", "부산"), provider)
        assert handler.requests[0].url.params["query"] == "다이소 부산"
        assert all(p.category == "다이소" for p in places)

    def test_skips_documents_without_coordinates(self):
        response = kakao_page(range(2), True)
        body = response.json()
        body["documents"][0]["y"] = ""
        del body["documents"][1]["x"]
        body["documents"].append(dict(body["documents"][0], id="9", y="37.5"))
        handler = Recorder(httpx.Response(200, json=body))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        places = run(lambda: provider.search_places("다이소"), provider)

        assert [p.id for p in places] == ["kakao-9"]

    def test_empty_query(self):
        provider = KakaoMapProvider(make_settings())
        with pytest.raises(ValidationError):
            run(lambda: provider.search_places(""), provider)


# ── Naver ───────────────────────────────────────────────────────


class TestNaverDirections:
    def test_parses_route(self):
        body = {
            "code": 0,
            "message": "길찾기를 성공하였습니다.",
            "route": {"trafast": [{
                "summary": {"distance": 12000, "duration": 900400},
                "path": [[126.978, 37.5665], [127.0, 37.53], [127.0276, 37.4979]],
            }]},
        }
        handler = Recorder(httpx.Response(200, json=body))
        provider = NaverMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        route = run(lambda: provider.get_route(A, B, RouteOption.fast), provider)

        assert route.distance == 12000
        assert route.duration == 900
        assert len(route.path) == 3
        assert route.path[0].distance == 0
        request = handler.requests[0]
        assert request.url.path == "/map-direction/v1/driving"
        assert request.url.params["start"] == "126.978,37.5665"
        assert request.url.params["goal"] == "127.0276,37.4979"
        assert request.url.params["option"] == "trafast"
        assert request.headers["X-NCP-APIGW-API-KEY-ID"] == "maps-id"

    def test_error_code_is_no_route(self):
        body = {"code": 1, "message": "출발지와 도착지가 동일합니다."}
        provider = NaverMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        with pytest.raises(NoRouteFound):
            run(lambda: provider.get_route(A, B), provider)


class TestNaverGeocoding:
    def test_geocode(self):
        body = {"status": "OK", "addresses": [{"x": "126.978", "y": "37.5665"}]}
        provider = NaverMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        assert run(lambda: provider.geocode_address("세종대로 110"), provider) == A

    def test_geocode_no_match(self):
        body = {"status": "OK", "addresses": []}
        provider = NaverMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        with pytest.raises(NoAddressFound):
            run(lambda: provider.geocode_address("없는 주소"), provider)

    def test_reverse_geocode_road_address(self):
        region = {
            "area1": {"name": "서울특별시"},
            "area2": {"name": "중구"},
            "area3": {"name": "태평로1가"},
        }
        body = {
            "status": {"code": 0, "message": "done"},
            "results": [
                {"name": "addr", "region": region, "land": {"number1": "31", "number2": ""}},
                {"name": "roadaddr", "region": region, "land": {
                    "name": "세종대로", "number1": "110",
                    "addition0": {"type": "building", "value": "세종대로"},
                    "addition1": {"type": "zipcode", "value": "110"},
                }},
            ],
        }
        handler = Recorder(httpx.Response(200, json=body))
        provider = NaverMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        address = run(lambda: provider.reverse_geocode(A), provider)

        assert address == "서울특별시 중구 세종대로 110"
        assert handler.requests[0].url.params["coords"] == "126.978,37.5665"
        assert handler.requests[0].url.params["orders"] == "roadaddr,addr"

    def test_reverse_geocode_lot_address(self):
        body = {
            "status": {"code": 0},
            "results": [{
                "name": "addr",
                "region": {
                    "area1": {"name": "서울특별시"},
                    "area2": {"name": "중구"},
                    "area3": {"name": "태평로1가"},
                },
                "land": {"number1": "31", "number2": "2"},
            }],
        }
        provider = NaverMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        assert run(lambda: provider.reverse_geocode(A), provider) == "서울특별시 중구 태평로1가 31-2"


class TestNaverSearch:
    def test_parses_and_dedupes(self):
        item = {
            "title": "<b>다이소</b> 강남점",
            "address": "서울특별시 강남구 역삼동 825",
            "roadAddress": "서울특별시 강남구 강남대로 396",
            "telephone": "",
            "mapx": "1270276000",
            "mapy": "374979000",
        }
        body = {"items": [item, dict(item), dict(item, title="다이소 역삼점", mapx="1270300000")]}
        handler = Recorder(httpx.Response(200, json=body))
        provider = NaverMapProvider(make_settings(), transport=httpx.MockTransport(handler))

        places = run(lambda: provider.search_places("다이소"), provider)

        assert [p.name for p in places] == ["다이소 강남점", "다이소 역삼점"]
        assert places[0].id == "naver-1270276000-374979000"
        assert places[0].coordinates == Coordinate(37.4979, 127.0276)
        assert places[0].phone is None
        request = handler.requests[0]
        assert request.url.host == "openapi.naver.com"
        assert request.headers["X-Naver-Client-Id"] == "search-id"
        assert request.url.params["display"] == "5"

    def test_radius_filter(self):
        body = {"items": [
            {"title": "near", "address": "a", "mapx": "1270276000", "mapy": "374979000"},
            {"title": "far", "address": "b", "mapx": "1290000000", "mapy": "351000000"},
        ]}
        provider = NaverMapProvider(
            make_settings(), transport=httpx.MockTransport(Recorder(httpx.Response(200, json=body))),
        )
        places = run(lambda: provider.search_places("x", center=B, radius_m=1000), provider)
        assert [p.name for p in places] == ["near"]


# ── Retry transport ─────────────────────────────────────────────


class TestRetryTransport:
    def test_retries_server_errors(self):
        handler = Recorder(
            httpx.Response(503),
            httpx.Response(502),
            httpx.Response(200, json=KAKAO_ROUTE),
        )
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        route = run(lambda: provider.get_route(A, B), provider)
        assert route.distance == 12345
        assert len(handler.requests) == 3

    def test_rate_limit_exhausts_to_rate_limited(self):
        handler = Recorder(httpx.Response(429))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        with pytest.raises(RateLimited):
            run(lambda: provider.get_route(A, B), provider)
        assert len(handler.requests) == 4

    def test_connection_errors_become_network_error(self):
        handler = Recorder(httpx.ConnectError("connection refused"))
        provider = KakaoMapProvider(
            make_settings(http_max_retries=2), transport=httpx.MockTransport(handler),
        )
        with pytest.raises(NetworkError):
            run(lambda: provider.get_route(A, B), provider)
        assert len(handler.requests) == 3

    def test_client_errors_not_retried(self):
        handler = Recorder(httpx.Response(401, json={"msg": "bad key"}))
        provider = KakaoMapProvider(make_settings(), transport=httpx.MockTransport(handler))
        with pytest.raises(ProviderError) as exc:
            run(lambda: provider.get_route(A, B), provider)
        assert exc.value.details["status"] == 401
        assert len(handler.requests) == 1

    def test_waits_longer_each_attempt(self, monkeypatch):
        delays = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr("midway.providers.http.asyncio.sleep", fake_sleep)
        handler = Recorder(httpx.Response(500))
        transport = RetryTransport(httpx.MockTransport(handler), max_retries=3, retry_delay=1.0)

        async def go():
            async with httpx.AsyncClient(transport=transport) as client:
                return await client.get("https://example.test/")

        response = asyncio.run(go())
        assert response.status_code == 500
        assert delays == [1.0, 2.0, 3.0]


class TestBuildProviders:
    def test_kakao(self):
        providers = build_providers(make_settings(map_provider="kakao"))
        assert providers.kind == ProviderKind.kakao.value
        assert isinstance(providers.directions, KakaoMapProvider)
        assert providers.directions is providers.search
        asyncio.run(providers.aclose())

    def test_naver_case_insensitive(self):
        providers = build_providers(make_settings(map_provider="NAVER"))
        assert isinstance(providers.geocoding, NaverMapProvider)
        asyncio.run(providers.aclose())

    def test_unknown_provider(self):
        with pytest.raises(ValueError):
            build_providers(make_settings(map_provider="google"))
