from __future__ import annotations

import copy
import json
import os
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient

from pricescan.app.core.config import Settings
from pricescan.app.core.llm import VisionCompletion
from pricescan.app.main import create_app

SAMPLE_RESULT: Dict[str, Any] = {
    "name": "野獸國 D-Stage 死侍雕像",
    "price": "NT$ 1,200 - 1,500",
    "priceNote": "依官方售價與二手行情估算",
    "description": "紅黑配色的死侍造型雕像，附場景底座",
    "origin": "Beast Kingdom 於 2017 年推出 D-Stage 系列",
    "material": "PVC",
    "usage": "收藏、展示",
    "category": "公仔 / 模型",
    "brand": "Beast Kingdom",
    "size": "約 15 公分高",
    "weight": "約 300 克",
    "warranty": "無",
    "availability": "玩具專賣店、網路商城",
    "popularityScore": 78,
    "ecoScore": 35,
    "durability": "10 年以上",
    "maintenance": "避免陽光直射，定期除塵",
    "tips": ["確認正版雷射標籤", "比較各平台價格", "注意盒況"],
    "relatedItems": [
        {"icon": "🔗", "name": "D-Stage 蜘蛛人"},
        {"icon": "🔍", "name": "Marvel Legends 死侍"},
        {"icon": "💡", "name": "壓克力展示盒"},
    ],
    "purchaseLinks": {
        "online": [
            {"platform": "蝦皮購物", "searchTerm": "D-Stage 死侍"},
            {"platform": "PChome 24h", "searchTerm": "野獸國 死侍"},
            {"platform": "momo購物網", "searchTerm": "死侍 雕像"},
            {"platform": "露天拍賣", "searchTerm": "D-Stage Deadpool"},
            {"platform": "Yahoo拍賣", "searchTerm": "野獸國 D-Stage"},
        ],
        "offline": ["玩具反斗城", "西門町萬年大樓"],
    },
}

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class StubVisionClient:
    """Records every call and answers with canned content or an exception."""

    def __init__(
        self,
        content: str = "",
        error: Optional[Exception] = None,
    ) -> None:
        self.content = content
        self.error = error
        self.calls: List[SimpleNamespace] = []

    async def complete(
        self,
        prompt: str,
        image_data_url: str,
        json_mode: bool = True,
    ) -> VisionCompletion:
        self.calls.append(
            SimpleNamespace(
                prompt=prompt,
                image_data_url=image_data_url,
                json_mode=json_mode,
            )
        )
        if self.error is not None:
            raise self.error
        return VisionCompletion(
            content=self.content,
            model="gpt-4o-stub",
            input_tokens=120,
            output_tokens=80,
            latency_ms=5,
        )


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """
    Keep the developer's shell (OPENAI_API_KEY, PORT, ...) out of the tests.
    """
    for name in list(os.environ):
        if name.startswith("PRICESCAN_"):
            monkeypatch.delenv(name, raising=False)
    for name in (
        "OPENAI_API_KEY",
        "OPENAI_BASE_URL",
        "PORT",
        "ALLOWED_ORIGINS",
        "APP_NAME",
        "APP_ENV",
        "LOG_LEVEL",
        "LANGCHAIN_TRACING_V2",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def sample_result() -> Dict[str, Any]:
    return copy.deepcopy(SAMPLE_RESULT)


@pytest.fixture
def make_client() -> Callable[..., Tuple[TestClient, StubVisionClient]]:
    def _make(
        content: Optional[str] = None,
        error: Optional[Exception] = None,
        api_key: Optional[str] = "sk-test",
        **overrides: Any,
    ) -> Tuple[TestClient, StubVisionClient]:
        stub = StubVisionClient(
            content=json.dumps(SAMPLE_RESULT, ensure_ascii=False) if content is None else content,
            error=error,
        )
        cfg = Settings(_env_file=None, openai_api_key=api_key, **overrides)
        app = create_app(settings=cfg, vision_client=stub)
        return TestClient(app), stub

    return _make
