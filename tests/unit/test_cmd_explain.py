"""Unit tests for the explain and toggle-tag commands."""

from __future__ import annotations

import json

from click.testing import CliRunner

from note_finder.commands.explain import cli as explain_cli
from note_finder.commands.explain import expression_element_to_str, tokens_to_dict
from note_finder.commands.toggle_tag import cli as toggle_tag_cli
from note_finder.search.parser import parse_filter_search_tokens
from note_finder.search.tokens import (
    EMPTY_TOKENS,
    ExpressionOperator,
    InclusionOperator,
    NotTagOperand,
    RequireTaggedOperand,
    TagOperand,
    UntaggedOperand,
)


class TestExpressionElementToStr:
    def test_all_elements(self) -> None:
        assert expression_element_to_str(TagOperand("a/b")) == "#a/b"
        assert expression_element_to_str(NotTagOperand("a")) == "-#a"
        assert expression_element_to_str(RequireTaggedOperand()) == "#"
        assert expression_element_to_str(UntaggedOperand()) == "-#"
        assert expression_element_to_str(ExpressionOperator(InclusionOperator.OR)) == "OR"


class TestTokensToDict:
    def test_empty(self) -> None:
        data = tokens_to_dict(EMPTY_TOKENS)
        assert data["mode"] == "filter"
        assert data["expression"] == []
        assert data["summary"]["has_active_criteria"] is False

    def test_is_json_serializable(self) -> None:
        tokens = parse_filter_search_tokens("meeting -#archive @2026-02-01.. -@c:2025 has:task")
        data = json.loads(json.dumps(tokens_to_dict(tokens)))
        assert data["name_tokens"] == ["meeting"]
        assert data["date_ranges"][0]["field"] == "default"
        assert data["date_ranges"][0]["end_ms"] is None
        assert data["date_ranges"][0]["end"] is None
        assert data["exclude_date_ranges"][0]["field"] == "created"
        assert data["summary"]["needs_date_lookup"] is True


class TestExplainCommand:
    def test_tag_mode_output(self) -> None:
        runner = CliRunner()
        result = runner.invoke(explain_cli, ["#a", "OR", "#b", "#c"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["mode"] == "tag"
        assert data["expression"] == ["#a", "#b", "#c", "AND", "OR"]
        assert data["summary"]["every_match_is_tagged"] is True

    def test_fallback_output(self) -> None:
        runner = CliRunner()
        result = runner.invoke(explain_cli, ["#a OR"])
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["mode"] == "filter"
        assert data["name_tokens"] == ["or"]
        assert data["tag_tokens"] == ["a"]


class TestToggleTagCommand:
    def test_adds_with_operator(self) -> None:
        runner = CliRunner()
        result = runner.invoke(toggle_tag_cli, ["#alpha", "beta", "--operator", "or"])
        assert result.exit_code == 0
        assert result.output.strip() == "#alpha OR #beta"

    def test_removes_with_hash_prefix(self) -> None:
        runner = CliRunner()
        result = runner.invoke(toggle_tag_cli, ["#alpha OR #beta OR #gamma", "#Beta"])
        assert result.exit_code == 0
        assert result.output.strip() == "#alpha OR #gamma"

    def test_invalid_operator(self) -> None:
        runner = CliRunner()
        result = runner.invoke(toggle_tag_cli, ["#alpha", "beta", "--operator", "XOR"])
        assert result.exit_code == 2
