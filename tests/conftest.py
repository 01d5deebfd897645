from __future__ import annotations

from typing import Any

import httpx
import pytest


def report_payload() -> dict[str, Any]:
    return {
        "sections": {
            "fire": [
                {
                    "tier": "Fire",
                    "recommendation": "home",
                    "game": {"away": "A", "home": "B"},
                    "prob": {"current": 0.7, "target": 0.65},
                }
            ],
            "watch": [
                {
                    "tier": "Watch",
                    "recommendation": "BUF -2.5",
                    "game": {"away": "MIA", "home": "BUF"},
                    "market": {"spread": {"home": -3.5}},
                    "required": {"buy_points": 1.0, "buy_to_line": -2.5},
                    "prob": {"current": 0.6, "target": 0.65, "buy": 0.67},
                    "pricing": {
                        "final_price": -145,
                        "max_acceptable_price": -150,
                        "ev_ok": True,
                    },
                }
            ],
        },
        "summary": {"by_tier": {"Fire": 1, "Watch": 1, "Garbage": 2}},
    }


def edges_payload() -> dict[str, Any]:
    return {
        "plays": [
            {
                "recommendation": "none",
                "game": {"away": "NYJ", "home": "NE"},
                "prob": {"buy": 0.58, "target": 0.65},
                "reason": "requires non-key buy",
            },
            {"tier": "Garbage", "game": {"away": "DAL", "home": "PHI"}},
        ]
    }


REPORT_HEADERS = {
    "x-ratelimit-limit": "120",
    "x-ratelimit-remaining": "117",
    "x-cache": "HIT",
    "x-cache-ttl": "30",
}


def make_handler(
    *,
    report_status: int = 200,
    edges_status: int = 200,
    calls: list[httpx.Request] | None = None,
):
    def handler(request: httpx.Request) -> httpx.Response:
        if calls is not None:
            calls.append(request)
        if request.url.path == "/report":
            if report_status != 200:
                return httpx.Response(report_status)
            return httpx.Response(200, json=report_payload(), headers=REPORT_HEADERS)
        if request.url.path == "/best_edges":
            if edges_status != 200:
                return httpx.Response(edges_status)
            return httpx.Response(200, json=edges_payload())
        return httpx.Response(404)

    return handler


@pytest.fixture(autouse=True)
def _isolate_wpp_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("WPP_BASE", "WPP_BASE_URL", "NEXT_PUBLIC_WPP_BASE", "WPP_GARBAGE_N"):
        monkeypatch.delenv(name, raising=False)
