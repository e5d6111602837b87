"""
OFX statement parser.

Reads bank exports with ofxparse. Transactions ofxparse rejects are not
dropped: each field is read again on its own and falls back to a default
with a warning, so a bad field never aborts the import.
"""

import io
import re
from dataclasses import dataclass, field
from datetime import date
from decimal import InvalidOperation
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import structlog
from ofxparse import OfxParser as LibOfxParser
from ofxparse.ofxparse import OfxParserException

from ..config import get_settings
from ..models import StatementLine
from ..utils.money import to_cents

logger = structlog.get_logger()


@dataclass
class ParseResult:
    """Result of parsing a statement file."""
    lines: List[StatementLine] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    @property
    def degraded_count(self) -> int:
        return len(self.warnings)


class OFXStatementParser:
    """Turns OFX exports into StatementLine records for one bank account."""

    XML_ENCODING = re.compile(r"encoding=[\"'].*?[\"']", re.IGNORECASE)
    SGML_ENCODING = re.compile(r"^(\s*ENCODING:)\s*\S+", re.IGNORECASE | re.MULTILINE)

    def __init__(self):
        self.settings = get_settings()

    def parse_file(self, path: Union[str, Path], bank_account_id: str) -> ParseResult:
        """Read an OFX export; cp1252 fallback for legacy bank encodings."""
        raw = Path(path).read_bytes()
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError:
            text = raw.decode("cp1252", errors="ignore")
        return self.parse(text, bank_account_id)

    def parse(self, text: str, bank_account_id: str) -> ParseResult:
        """
        Parse OFX text.

        Args:
            text: Raw file contents
            bank_account_id: Account the statement belongs to

        Returns:
            ParseResult with one StatementLine per transaction
        """
        result = ParseResult()

        try:
            ofx = LibOfxParser.parse(io.BytesIO(self._to_bytes(text or "")), fail_fast=False)
        except (OfxParserException, ValueError) as e:
            result.errors.append(f"Unreadable OFX file: {e}")
            logger.warning("Statement unreadable", bank_account_id=bank_account_id, error=str(e))
            return result

        statements = [
            account.statement
            for account in ofx.accounts
            if getattr(account, "statement", None) is not None
        ]

        number = 0
        for statement in statements:
            for tx in statement.transactions:
                result.lines.append(self._from_transaction(tx, number, bank_account_id, result.warnings))
                number += 1
            for discarded in statement.discarded_entries:
                result.lines.append(
                    self._from_discarded(discarded, number, bank_account_id, result.warnings)
                )
                number += 1

        if not result.lines:
            result.errors.append("No transactions found")
            logger.warning("Statement has no transactions", bank_account_id=bank_account_id)
            return result

        logger.info(
            "Statement parsed",
            bank_account_id=bank_account_id,
            lines=len(result.lines),
            warnings=len(result.warnings),
        )
        return result

    def _to_bytes(self, text: str) -> bytes:
        """Declare UTF-8 to ofxparse; without an SGML header it assumes cp1252."""
        text = self.XML_ENCODING.sub('encoding="UTF-8"', text, count=1)
        if self.SGML_ENCODING.search(text):
            return self.SGML_ENCODING.sub(r"\1UTF-8", text, count=1).encode("utf-8")
        return text.encode("cp1252", errors="replace")

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    def _from_transaction(
        self,
        tx: Any,
        number: int,
        bank_account_id: str,
        warnings: List[str],
    ) -> StatementLine:
        problems = []

        if tx.amount is None:
            amount_cents = 0
            problems.append("missing TRNAMT, using 0")
        else:
            amount_cents = to_cents(tx.amount)

        if tx.date is None:
            posted = date.today()
            problems.append("missing DTPOSTED, using today")
        else:
            posted = tx.date.date()

        memo = (tx.memo or "").strip() or (tx.payee or "").strip()
        return self._build(
            bank_account_id, amount_cents, posted, memo, tx.id or None, number, problems, warnings
        )

    def _from_discarded(
        self,
        discarded: dict,
        number: int,
        bank_account_id: str,
        warnings: List[str],
    ) -> StatementLine:
        """Salvage a transaction ofxparse rejected, one field at a time."""
        tag = discarded["content"]
        problems = []

        amount_cents, amount_problem = self._salvage_amount(tag.find("trnamt"))
        posted, date_problem = self._salvage_date(self._text(tag, "dtposted"))
        problems.extend(p for p in (amount_problem, date_problem) if p)
        if not problems:
            problems.append(f"recovered after parser error ({discarded['error']})")

        memo = self._text(tag, "memo") or self._text(tag, "name") or ""
        return self._build(
            bank_account_id,
            amount_cents,
            posted,
            memo,
            self._text(tag, "fitid"),
            number,
            problems,
            warnings,
        )

    def _build(
        self,
        bank_account_id: str,
        amount_cents: int,
        posted: date,
        memo: str,
        fitid: Optional[str],
        number: int,
        problems: List[str],
        warnings: List[str],
    ) -> StatementLine:
        if not memo:
            problems.append("missing MEMO, using placeholder")
            memo = self.settings.statement_placeholder_memo
        warnings.extend(f"Transaction {number}: {problem}" for problem in problems)

        return StatementLine(
            bank_account_id=bank_account_id,
            date=posted,
            description=memo,
            amount_cents=amount_cents,
            external_ref=fitid,
        )

    @staticmethod
    def _text(tag: Any, name: str) -> Optional[str]:
        node = tag.find(name)
        if node is None:
            return None
        value = node.find(string=True, recursive=False)
        return (value.strip() or None) if value else None

    @staticmethod
    def _salvage_amount(node: Any) -> Tuple[int, Optional[str]]:
        if node is None or not node.contents:
            return 0, "missing TRNAMT, using 0"
        try:
            return to_cents(LibOfxParser.toDecimal(node)), None
        except (InvalidOperation, ValueError, TypeError):
            return 0, f"invalid TRNAMT {str(node.contents[0]).strip()!r}, using 0"

    @staticmethod
    def _salvage_date(raw: Optional[str]) -> Tuple[date, Optional[str]]:
        if raw is None:
            return date.today(), "missing DTPOSTED, using today"
        try:
            return LibOfxParser.parseOfxDateTime(raw).date(), None
        except (ValueError, TypeError, OfxParserException):
            return date.today(), f"invalid DTPOSTED {raw!r}, using today"
