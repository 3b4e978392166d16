# tests/engine/composer/conftest.py
import pytest
from unittest.mock import AsyncMock
from widgetkit.engine.composer import InMemorySchemaStore, SchemaRecord


def ref(widget_key: str, **extra) -> dict:
    """引用节点的简写。"""
    return {"type": "div", "schemaRef": widget_key, **extra}


def leaf(text: str) -> dict:
    return {"type": "text", "text": text}


@pytest.fixture
def store():
    """空的内存 store，测试按需 add。"""
    return InMemorySchemaStore()


@pytest.fixture
def ticker_store():
    """
    一个小型的三层组合：
    dashboard -> (ticker, token)，token -> ticker
    ticker 和 dashboard 都声明了 selfChannelKey。
    """
    return InMemorySchemaStore([
        {
            "widgetKey": "widget.tickers.live",
            "schema": {"type": "div", "className": "ticker", "children": [leaf("{{self.last}}")]},
            "selfChannelKey": "testnet.runtime.ticker.BTC/USDT.bybit.spot",
        },
        {
            "widgetKey": "widget.asset.token",
            "schema": {"type": "div", "children": [leaf("{{btc_ticker.last}}"), ref("widget.tickers.live")]},
            "channelAliases": [
                {"channelKey": "testnet.runtime.ticker.BTC/USDT.bybit.spot", "alias": "btc_ticker"},
            ],
        },
        {
            "widgetKey": "widget.dashboard",
            "schema": {"type": "div", "children": [ref("widget.tickers.live"), ref("widget.asset.token")]},
            "channelKeys": ["testnet.runtime.sonar"],
            "selfChannelKey": "testnet.runtime.sonar",
        },
    ])


@pytest.fixture
def failing_store():
    """底层存储不可用：lookup 抛出异常。"""
    store = AsyncMock()
    store.lookup.side_effect = ConnectionError("store unavailable")
    return store


@pytest.fixture
def record_factory():
    def _make(widget_key: str, tree: dict, **kwargs) -> SchemaRecord:
        return SchemaRecord(widgetKey=widget_key, tree=tree, **kwargs)
    return _make
