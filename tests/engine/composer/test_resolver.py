# tests/engine/composer/test_resolver.py
import copy
import pytest

from widgetkit.engine.composer import (
    InMemorySchemaStore,
    PlaceholderReason,
    UiNode,
    extract_schema_refs,
    is_placeholder,
    make_placeholder,
    resolve_schema,
    resolve_schema_refs,
)

# 标记所有测试为异步
pytestmark = pytest.mark.asyncio


def ref(widget_key: str, **extra) -> dict:
    return {"type": "div", "schemaRef": widget_key, **extra}


class CountingStore(InMemorySchemaStore):
    """记录 lookup 调用，便于断言展开次数。"""
    def __init__(self, records=None):
        super().__init__(records)
        self.lookups = []

    async def lookup(self, widget_key):
        self.lookups.append(widget_key)
        return await super().lookup(widget_key)


async def test_reference_is_replaced_by_stored_tree(ticker_store):
    tree = {"type": "div", "className": "wrap", "children": [ref("widget.tickers.live")]}

    result = await resolve_schema_refs(tree, ticker_store)

    assert result == {
        "type": "div",
        "className": "wrap",
        "children": [
            {"type": "div", "className": "ticker", "children": [{"type": "text", "text": "{{self.last}}"}]},
        ],
    }


async def test_reference_node_fields_are_dropped(ticker_store):
    """引用节点自身的 className 等字段不会带入展开结果。"""
    result = await resolve_schema_refs(ref("widget.tickers.live", className="col-span-2"), ticker_store)
    assert result["className"] == "ticker"
    assert "schemaRef" not in result


async def test_nested_references_are_fully_expanded(ticker_store):
    record = await ticker_store.lookup("widget.dashboard")

    result = await resolve_schema(record, ticker_store)

    assert extract_schema_refs(result) == set()
    ticker, token = result["children"]
    assert ticker["className"] == "ticker"
    # token -> ticker 的第二层引用同样被展开
    assert token["children"][1]["className"] == "ticker"


async def test_same_key_as_siblings_is_not_a_cycle(store):
    store.add({"widgetKey": "widget.x", "schema": {"type": "text", "text": "x"}})
    tree = {"type": "div", "children": [ref("widget.x"), ref("widget.x")]}

    result = await resolve_schema_refs(tree, store)

    assert result["children"] == [{"type": "text", "text": "x"}, {"type": "text", "text": "x"}]
    assert not any(is_placeholder(c) for c in result["children"])


async def test_self_reference_terminates_with_cycle_placeholder(store):
    record = store.add({"widgetKey": "widget.a", "schema": {"type": "div", "children": [ref("widget.a")]}})

    result = await resolve_schema(record, store)

    assert result == {"type": "div", "children": [make_placeholder("widget.a", PlaceholderReason.CYCLE)]}


async def test_two_schema_cycle_is_cut_at_the_repeat(store):
    store.add({"widgetKey": "widget.a", "schema": {"type": "div", "id": "a", "children": [ref("widget.b")]}})
    store.add({"widgetKey": "widget.b", "schema": {"type": "div", "id": "b", "children": [ref("widget.a")]}})

    result = await resolve_schema_refs(ref("widget.a"), store)

    assert result["id"] == "a"
    inner = result["children"][0]
    assert inner["id"] == "b"
    placeholder = inner["children"][0]
    assert is_placeholder(placeholder)
    assert placeholder["placeholder"] == {"reason": "cycle", "schemaRef": "widget.a"}
    assert "Circular schema reference: widget.a" == placeholder["text"]


async def test_dangling_reference_becomes_missing_placeholder(store):
    tree = {"type": "div", "children": [ref("widget.ghost"), {"type": "text", "text": "kept"}]}

    result = await resolve_schema_refs(tree, store)

    missing, kept = result["children"]
    assert missing == make_placeholder("widget.ghost", PlaceholderReason.MISSING)
    assert missing["text"] == "Schema not found: widget.ghost"
    assert kept == {"type": "text", "text": "kept"}


async def test_placeholders_carry_no_reference(store):
    result = await resolve_schema_refs({"type": "div", "children": [ref("widget.ghost")]}, store)
    assert extract_schema_refs(result) == set()
    assert "children" not in result["children"][0]


async def test_long_chain_stops_at_max_depth():
    """20 层链在 max_depth=10 时终止，且最多展开 10 个 schema。"""
    records = [
        {"widgetKey": f"s{i}", "schema": {"type": "div", "id": i, "children": [ref(f"s{i + 1}")]}}
        for i in range(19)
    ]
    records.append({"widgetKey": "s19", "schema": {"type": "text", "text": "bottom"}})
    store = CountingStore(records)

    result = await resolve_schema_refs(ref("s0"), store, max_depth=10)

    # 每层引用占两级深度 (引用节点 + 展开的树)
    assert store.lookups == [f"s{i}" for i in range(6)]
    # 超过上限的子树原样保留
    assert extract_schema_refs(result) == {f"s{len(store.lookups)}"}


async def test_max_depth_zero_leaves_child_references_unchanged(ticker_store):
    tree = {"type": "div", "children": [ref("widget.tickers.live")]}
    result = await resolve_schema_refs(tree, ticker_store, max_depth=0)
    assert result == tree


async def test_max_depth_zero_still_expands_top_level_reference(ticker_store):
    """depth 0 不超过上限：顶层引用被展开，展开出的树 (depth 1) 原样返回。"""
    stored = (await ticker_store.lookup("widget.asset.token")).tree

    result = await resolve_schema_refs(ref("widget.asset.token"), ticker_store, max_depth=0)

    assert result == stored
    assert result["children"][1] == ref("widget.tickers.live")


async def test_reference_exactly_at_max_depth_is_expanded(store):
    store.add({"widgetKey": "A", "schema": ref("B")})
    store.add({"widgetKey": "B", "schema": {"type": "text", "text": "b"}})

    result = await resolve_schema_refs(ref("A"), store, 0, 1)

    assert result == {"type": "text", "text": "b"}


async def test_reference_past_max_depth_is_left_unexpanded(store):
    store.add({"widgetKey": "A", "schema": {"type": "div", "children": [ref("B")]}})
    store.add({"widgetKey": "B", "schema": {"type": "text", "text": "b"}})

    result = await resolve_schema_refs(ref("A"), store, 0, 1)

    assert result == {"type": "div", "children": [ref("B")]}


async def test_resolution_is_idempotent(ticker_store):
    tree = {"type": "div", "children": [ref("widget.dashboard"), ref("widget.ghost")]}

    once = await resolve_schema_refs(tree, ticker_store)
    twice = await resolve_schema_refs(once, ticker_store)

    assert twice == once


async def test_input_tree_and_store_are_not_mutated(ticker_store):
    tree = {"type": "div", "children": [ref("widget.dashboard")]}
    snapshot = copy.deepcopy(tree)
    stored = (await ticker_store.lookup("widget.dashboard")).tree
    stored_snapshot = copy.deepcopy(stored)

    result = await resolve_schema_refs(tree, ticker_store)
    result["children"][0]["children"].append({"type": "text"})

    assert tree == snapshot
    assert (await ticker_store.lookup("widget.dashboard")).tree == stored_snapshot


@pytest.mark.parametrize("malformed", [None, "plain", 3, ["a", "b"]])
async def test_non_node_values_pass_through(store, malformed):
    assert await resolve_schema_refs(malformed, store) == malformed


async def test_malformed_children_are_tolerated(store):
    tree = {"type": "div", "children": [None, "raw", {"type": "div", "children": "nope"}]}
    result = await resolve_schema_refs(tree, store)
    assert result == tree


async def test_accepts_pydantic_ui_node(ticker_store):
    node = UiNode.model_validate({"type": "div", "children": [ref("widget.tickers.live")]})
    result = await resolve_schema_refs(node, ticker_store)
    assert result["children"][0]["className"] == "ticker"


async def test_store_failure_propagates(failing_store):
    with pytest.raises(ConnectionError, match="store unavailable"):
        await resolve_schema_refs({"type": "div", "children": [ref("widget.a")]}, failing_store)


async def test_concurrent_resolutions_do_not_share_state(ticker_store):
    """无状态：同一 store 上的并发调用互不影响。"""
    import asyncio
    tree = {"type": "div", "children": [ref("widget.dashboard")]}
    results = await asyncio.gather(*[resolve_schema_refs(tree, ticker_store) for _ in range(5)])
    assert all(r == results[0] for r in results)
