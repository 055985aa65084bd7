"""
Tests for importance annotation.
"""

import pytest

from notetaker.importance import annotate_importance


class TestAnnotateImportance:
    """Test cases for annotate_importance."""

    def test_categories_nest(self):
        assert annotate_importance("Research shows a key result.") == \
            "**Research shows** a **key **result****."

    def test_percentage(self):
        assert annotate_importance("Accuracy rose to 95%") == "Accuracy rose to **95%**"

    def test_grouped_number(self):
        assert annotate_importance("About 1,200 samples") == "About **1,200** samples"

    def test_definition(self):
        assert annotate_importance("Entropy refers to disorder") == "Entropy **refers to** disorder"

    @pytest.mark.parametrize("text,expected", [
        ("We must act", "We **must** act"),
        ("Mustard is yellow", "Mustard is yellow"),
        ("Tallest tower", "Tallest tower"),
    ])
    def test_strong_statements_respect_word_boundaries(self, text, expected):
        assert annotate_importance(text) == expected

    def test_plain_text_unchanged(self):
        assert annotate_importance("The cat sat on the mat.") == "The cat sat on the mat."

    def test_output_is_deterministic(self):
        text = "Notably, the main idea is that 40% of results hold."
        assert annotate_importance(text) == annotate_importance(text)
