"""Unit tests for smartreader.placeholders."""

from __future__ import annotations

from smartreader.placeholders import PlaceholderTable, resolve_placeholders


def _table() -> PlaceholderTable:
    table = PlaceholderTable()
    table.register("image", "/image/cdn.example.com/a.jpg")
    table.register("image", "/image/cdn.example.com/b.jpg")
    table.register("link", "/article/example.com/news/1")
    return table


class TestPlaceholderTable:
    def test_namespaces_count_independently(self) -> None:
        table = PlaceholderTable()
        assert table.register("image", "/image/a") == "I0"
        assert table.register("link", "/article/a") == "L0"
        assert table.register("image", "/image/b") == "I1"
        assert table.register("link", "/article/b") == "L1"

    def test_same_target_reuses_token(self) -> None:
        table = PlaceholderTable()
        first = table.register("link", "/article/example.com/x")
        second = table.register("link", "/article/example.com/x")
        assert first == second == "L0"
        assert len(table) == 1

    def test_same_target_different_namespace_gets_new_token(self) -> None:
        table = PlaceholderTable()
        assert table.register("image", "/x") == "I0"
        assert table.register("link", "/x") == "L0"

    def test_tokens_unique(self) -> None:
        table = PlaceholderTable()
        tokens = [table.register("link", f"/article/example.com/{n}") for n in range(25)]
        assert len(set(tokens)) == 25
        assert len({target for _, target in table.items()}) == 25

    def test_lookup(self) -> None:
        table = _table()
        assert "I1" in table
        assert "L9" not in table
        assert table.get("L0") == "/article/example.com/news/1"
        assert table.get("missing") is None


class TestResolvePlaceholders:
    def test_exact_string_replaced(self) -> None:
        assert resolve_placeholders("I0", _table()) == "/image/cdn.example.com/a.jpg"

    def test_partial_match_untouched(self) -> None:
        table = _table()
        assert resolve_placeholders("see I0", table) == "see I0"
        assert resolve_placeholders("I0 ", table) == "I0 "
        assert resolve_placeholders("I01", table) == "I01"

    def test_nested_structure(self) -> None:
        value = {
            "title": "Headline",
            "image": "I1",
            "summary": ["point one", "L0"],
            "links": [{"label": "More", "link": "L0"}],
            "meta": ("I0", 3, None, True),
        }
        resolved = resolve_placeholders(value, _table())
        assert resolved == {
            "title": "Headline",
            "image": "/image/cdn.example.com/b.jpg",
            "summary": ["point one", "/article/example.com/news/1"],
            "links": [{"label": "More", "link": "/article/example.com/news/1"}],
            "meta": ("/image/cdn.example.com/a.jpg", 3, None, True),
        }

    def test_input_not_mutated(self) -> None:
        value = {"image": "I0", "summary": ["L0"]}
        resolve_placeholders(value, _table())
        assert value == {"image": "I0", "summary": ["L0"]}

    def test_unknown_token_passes_through(self) -> None:
        assert resolve_placeholders(["I7", "L3"], _table()) == ["I7", "L3"]

    def test_scalars_pass_through(self) -> None:
        table = _table()
        assert resolve_placeholders(42, table) == 42
        assert resolve_placeholders(None, table) is None
        assert resolve_placeholders(1.5, table) == 1.5
