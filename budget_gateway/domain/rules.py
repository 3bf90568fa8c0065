"""Classification rule table - ordered, first match wins"""

import re
import unicodedata
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence

from budget_gateway.domain.models import CREDIT, DEBIT, Transaction

CATCH_ALL_CATEGORY = "Por Definir"

# Categories only reachable through manual classification
MANUAL_ONLY_CATEGORIES = ("Entretenimiento",)

FULL_CONFIDENCE = 1.0


@dataclass(frozen=True)
class ClassificationRule:
    """One row of the decision table"""

    name: str
    category: str
    predicate: Callable[[Transaction], bool]
    confidence: float = FULL_CONFIDENCE
    summary: str = ""
    direction: Optional[str] = None  # restrict to "credit" or "debit"

    def matches(self, txn: Transaction) -> bool:
        if self.direction is not None and txn.direction != self.direction:
            return False
        return self.predicate(txn)


@dataclass(frozen=True)
class RuleMatch:
    position: int  # 1-based priority
    rule: ClassificationRule


def fold(text: str) -> str:
    """Lowercase and strip accents so "Remuneración" matches "remuneracion" """
    decomposed = unicodedata.normalize("NFKD", text.casefold())
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def keyword_predicate(keywords: Iterable[str]) -> Callable[[Transaction], bool]:
    """Whole-word, case and accent insensitive match on the description"""
    alternatives = "|".join(re.escape(fold(kw)) for kw in keywords)
    pattern = re.compile(rf"\b(?:{alternatives})\b")

    def predicate(txn: Transaction) -> bool:
        return pattern.search(fold(txn.description)) is not None

    return predicate


def keyword_rule(
    name: str,
    category: str,
    keywords: Sequence[str],
    confidence: float = FULL_CONFIDENCE,
    direction: Optional[str] = None,
) -> ClassificationRule:
    quoted = ", ".join(f'"{kw}"' for kw in keywords)
    return ClassificationRule(
        name=name,
        category=category,
        predicate=keyword_predicate(keywords),
        confidence=confidence,
        summary=f"description mentions {quoted}",
        direction=direction,
    )


def build_default_rules(income_sender: Optional[str] = "Roberto Mella") -> List[ClassificationRule]:
    """
    Default decision table.

    Income rules (credits only) come first, then household expenses (debits
    only), then a transfer rule that routes third-party transfers to the
    catch-all bucket for review.
    The named-sender income rule is only present when a sender is configured.
    """
    rules = [
        keyword_rule("salary", "Sueldo", ["Sueldo", "Remuneración", "Pago de nómina"], direction=CREDIT),
        keyword_rule("rent", "Arriendo", ["Arriendo", "Alquiler"], direction=CREDIT),
    ]
    if income_sender:
        rules.append(keyword_rule("named_sender", f"Ingreso {income_sender}", [income_sender], direction=CREDIT))
    rules += [
        keyword_rule(
            "household_bills",
            "Cuentas Casa",
            ["Servipag", "Dividendo", "Luz", "Agua", "Enel", "Aguas Andinas", "Isapre"],
            direction=DEBIT,
        ),
        keyword_rule(
            "supermarket",
            "Supermercado (Comida)",
            ["Lider", "Walmart", "Hipermercado", "Jumbo", "Tottus"],
            direction=DEBIT,
        ),
        keyword_rule(
            "corner_store",
            "Gastos Chicos/Almacén",
            ["Almacén", "Minimarket", "Kiosko", "Kiosco", "Botillería", "Panadería"],
            direction=DEBIT,
        ),
        keyword_rule("third_party_transfer", CATCH_ALL_CATEGORY, ["Transferencia", "Traspaso"]),
    ]
    return rules


def first_match(rules: Sequence[ClassificationRule], txn: Transaction) -> Optional[RuleMatch]:
    """Return the highest-priority rule matching the transaction"""
    for position, rule in enumerate(rules, start=1):
        if rule.matches(txn):
            return RuleMatch(position=position, rule=rule)
    return None


def closed_category_set(
    rules: Sequence[ClassificationRule],
    extra_categories: Iterable[str] = MANUAL_ONLY_CATEGORIES,
) -> List[str]:
    """Rule categories, then manual-only ones, then the catch-all; no duplicates"""
    categories: List[str] = []
    for category in [r.category for r in rules] + list(extra_categories) + [CATCH_ALL_CATEGORY]:
        if category not in categories:
            categories.append(category)
    return categories


def describe_rules(rules: Sequence[ClassificationRule]) -> str:
    """Render the table as numbered lines for the reasoning prompt"""
    lines = []
    for position, rule in enumerate(rules, start=1):
        scope = f" ({rule.direction} only)" if rule.direction else ""
        lines.append(f'{position}. If the {rule.summary}{scope}, categorize as "{rule.category}".')
    return "\n".join(lines)
