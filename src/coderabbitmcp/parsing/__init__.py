"""Parsers for the markdown CodeRabbit writes into reviews and inline comments."""

from coderabbitmcp.parsing.comment import parse_comment
from coderabbitmcp.parsing.review import parse_review

__all__ = ["parse_comment", "parse_review"]
