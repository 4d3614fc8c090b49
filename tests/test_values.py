"""Tests for renderable values and result formatting."""

from __future__ import annotations

import unittest

from mqtui.document import parse_markdown
from mqtui.values import (
    RBool,
    RMapping,
    RNull,
    RNumber,
    RSequence,
    RString,
    format_outputs,
    output_count,
    to_plain,
    to_renderable,
)


class ToRenderableTests(unittest.TestCase):
    def test_scalars(self) -> None:
        self.assertEqual(to_renderable(None), RNull())
        self.assertEqual(to_renderable(True), RBool(True))
        self.assertEqual(to_renderable(3), RNumber(3))
        self.assertEqual(to_renderable("x"), RString("x"))

    def test_containers_keep_order(self) -> None:
        value = to_renderable({"b": [1, "two"], "a": None})
        self.assertEqual(
            value,
            RMapping((("b", RSequence((RNumber(1), RString("two")))), ("a", RNull()))),
        )
        self.assertEqual(to_plain(value), {"b": [1, "two"], "a": None})

    def test_nodes_remember_their_type(self) -> None:
        (heading,) = parse_markdown("## Intro")
        value = to_renderable(heading)
        self.assertEqual(value.node_type, "heading")
        self.assertEqual(value.get("depth"), RNumber(2))
        self.assertIsNone(value.get("missing"))


class FormatOutputsTests(unittest.TestCase):
    def test_markdown_mode_shows_strings_raw_and_separates_outputs(self) -> None:
        outputs = RSequence((RString("one\ntwo"), RString("three")))
        self.assertEqual(format_outputs(outputs, "markdown"), ["one", "two", "", "three"])

    def test_markdown_mode_shows_nodes_as_source(self) -> None:
        nodes = parse_markdown("# A\n\ntext")
        outputs = RSequence((to_renderable(list(nodes)),))
        self.assertEqual(format_outputs(outputs, "markdown"), ["# A", "", "text"])

    def test_markdown_mode_falls_back_to_json_for_data(self) -> None:
        outputs = RSequence((to_renderable({"a": 1}),))
        self.assertEqual(format_outputs(outputs, "markdown"), ["{", '  "a": 1', "}"])

    def test_json_mode_pretty_prints_every_output(self) -> None:
        outputs = RSequence((RString("x"), RNumber(2)))
        self.assertEqual(format_outputs(outputs, "json"), ['"x"', "2"])

    def test_empty_string_output_is_one_blank_line(self) -> None:
        self.assertEqual(format_outputs(RSequence((RString(""),)), "markdown"), [""])

    def test_no_outputs_gives_no_lines(self) -> None:
        self.assertEqual(format_outputs(RSequence(()), "json"), [])

    def test_output_count(self) -> None:
        nodes = RSequence((to_renderable(parse_markdown("# A")[0]),))
        self.assertEqual(output_count(nodes), 1)
        self.assertEqual(output_count(RString("x")), 1)


if __name__ == "__main__":
    unittest.main()
