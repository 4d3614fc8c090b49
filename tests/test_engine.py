"""Tests for the query engine adapter.

The adapter turns query outputs into renderable values and every failure
into an ``Err`` carrying a ``QueryError``.
"""

from __future__ import annotations

import unittest
from unittest import mock

from mqtui.document import Document
from mqtui.engine import Err, Ok, QueryEngine, evaluate
from mqtui.errors import QueryError
from mqtui.values import RMapping, RNumber, RSequence, RString


class QueryEngineTests(unittest.TestCase):
    def test_identity_on_small_document_succeeds(self) -> None:
        outcome = evaluate(Document("# Title\n\nbody", "t.md"), ".")

        self.assertIsInstance(outcome, Ok)
        (document_sequence,) = outcome.value.items
        self.assertIsInstance(document_sequence, RSequence)
        heading, paragraph = document_sequence.items
        self.assertEqual(heading.node_type, "heading")
        self.assertEqual(heading.get("text"), RString("Title"))
        self.assertEqual(paragraph.get("markdown"), RString("body"))

    def test_unclosed_object_is_an_error_with_message(self) -> None:
        outcome = evaluate(Document("# Title\n\nbody", "t.md"), "{")

        self.assertIsInstance(outcome, Err)
        self.assertTrue(outcome.error.message)
        self.assertEqual(outcome.error.offset, 1)

    def test_evaluation_is_repeatable(self) -> None:
        document = Document("# A\n\n## B\n\ntext", "doc.md")
        engine = QueryEngine()
        self.assertEqual(engine.evaluate(document, ".h | .text"), engine.evaluate(document, ".h | .text"))
        self.assertEqual(engine.evaluate(document, "{"), engine.evaluate(document, "{"))

    def test_accepts_raw_markdown_text(self) -> None:
        outcome = QueryEngine().evaluate("# A\n\n## B", ".h2 | .depth")
        self.assertEqual(outcome, Ok(RSequence((RNumber(2),))))

    def test_runtime_failure_becomes_err_with_offset(self) -> None:
        outcome = evaluate("text", ". | .foo")
        self.assertEqual(outcome, Err(QueryError('cannot index sequence with "foo"', 4)))

    def test_unexpected_exception_is_reported_not_raised(self) -> None:
        with mock.patch("mqtui.engine.run_query", side_effect=RuntimeError("kaput")):
            outcome = evaluate("text", ".")
        self.assertIsInstance(outcome, Err)
        self.assertIn("kaput", outcome.error.message)

    def test_plain_mappings_have_no_node_type(self) -> None:
        outcome = evaluate("", '{a: 1}')
        (mapping,) = outcome.value.items
        self.assertIsInstance(mapping, RMapping)
        self.assertIsNone(mapping.node_type)


if __name__ == "__main__":
    unittest.main()
