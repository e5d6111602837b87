"""Ingestion module for bank statement files."""

from .ofx_parser import OFXStatementParser, ParseResult

__all__ = ["OFXStatementParser", "ParseResult"]
