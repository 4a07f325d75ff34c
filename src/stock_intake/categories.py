"""
Category detection for scanned invoice items.
Deterministic, first-match-wins rule tables: supplier filter-code families first
(codes are less ambiguous than descriptions), then description keywords.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from .models import CategoryTag
from .units import VISCOSITY_PATTERN


@dataclass(frozen=True)
class CodeRule:
    """
    One filter-code family entry. Matches when the upper-cased supplier code
    contains one of code_substrings or matches code_pattern (unless it contains
    one of code_excludes), or when a code-like token appears in the description.
    """
    brand: str
    tag: CategoryTag
    code_substrings: tuple[str, ...] = ()
    code_pattern: Optional[re.Pattern] = None
    code_excludes: tuple[str, ...] = ()
    text_patterns: tuple[re.Pattern, ...] = ()

    def matches(self, code: str, text: str) -> bool:
        if code and not any(x in code for x in self.code_excludes):
            if any(s in code for s in self.code_substrings):
                return True
            if self.code_pattern is not None and self.code_pattern.search(code):
                return True
        return any(p.search(text) for p in self.text_patterns)


@dataclass(frozen=True)
class DescriptionRule:
    """Keyword rule over the lower-cased description. Sub-rules refine the tag."""
    tag: CategoryTag
    keywords: tuple[str, ...] = ()
    patterns: tuple[re.Pattern, ...] = ()
    excludes: tuple[str, ...] = ()
    subrules: tuple["DescriptionRule", ...] = ()

    def matches(self, text: str) -> bool:
        if any(x in text for x in self.excludes):
            return False
        return any(k in text for k in self.keywords) or any(p.search(text) for p in self.patterns)

    def resolve(self, text: str) -> Optional[CategoryTag]:
        if not self.matches(text):
            return None
        for sub in self.subrules:
            if sub.matches(text):
                return sub.tag
        return self.tag


@dataclass(frozen=True)
class RuleSet:
    code_rules: tuple[CodeRule, ...]
    description_rules: tuple[DescriptionRule, ...]
    fallback: CategoryTag = field(default=CategoryTag.OTHER)


def _code_token(prefix: str) -> re.Pattern:
    """Code-like token in running text: 'wo340', 'WO-340', 'wo 340'."""
    return re.compile(rf"\b{prefix}[-\s]?\d+", re.I)


# Order matters: families overlap (a bare letter+digit code is ambiguous across
# brands), so the first family that claims a code decides.
CODE_RULES: tuple[CodeRule, ...] = (
    # Wega: WO oil, WAC cabin, WFC fuel, WA/WAP air
    CodeRule("wega", CategoryTag.OIL_FILTER, ("WO",), text_patterns=(_code_token("wo"),)),
    CodeRule("wega", CategoryTag.CABIN_AIR_FILTER, ("WAC",), text_patterns=(_code_token("wac"),)),
    CodeRule("wega", CategoryTag.FUEL_FILTER, ("WFC",), text_patterns=(_code_token("wfc"),)),
    CodeRule("wega", CategoryTag.AIR_FILTER, ("WA", "WAP"), text_patterns=(_code_token("wap?"),)),
    # Tecfil: PSL/PEL oil, ARL air, ACP cabin, GI fuel
    CodeRule("tecfil", CategoryTag.OIL_FILTER, ("PSL", "PEL"), text_patterns=(_code_token("psl"),)),
    CodeRule("tecfil", CategoryTag.AIR_FILTER, ("ARL",), text_patterns=(_code_token("arl"),)),
    CodeRule("tecfil", CategoryTag.CABIN_AIR_FILTER, ("ACP",), text_patterns=(_code_token("acp"),)),
    CodeRule("tecfil", CategoryTag.FUEL_FILTER, ("GI",), text_patterns=(_code_token("gi"),)),
    # Mann: W/HU oil, C air, CU/CUK cabin, WK fuel
    CodeRule(
        "mann",
        CategoryTag.OIL_FILTER,
        ("HU",),
        code_pattern=re.compile(r"^W\d"),
        text_patterns=(re.compile(r"\bw\d{3}", re.I), re.compile(r"\bhu\d{3}", re.I)),
    ),
    CodeRule(
        "mann",
        CategoryTag.AIR_FILTER,
        code_pattern=re.compile(r"^C\d"),
        code_excludes=("CU",),
        text_patterns=(re.compile(r"\bc\d{4,}", re.I),),
    ),
    CodeRule(
        "mann",
        CategoryTag.CABIN_AIR_FILTER,
        ("CUK", "CU"),
        text_patterns=(re.compile(r"\bcuk?\d+", re.I),),
    ),
    CodeRule("mann", CategoryTag.FUEL_FILTER, ("WK",), text_patterns=(_code_token("wk"),)),
    # Fram: PH oil, CA air, CF cabin, G fuel
    CodeRule(
        "fram",
        CategoryTag.OIL_FILTER,
        code_pattern=re.compile(r"^PH\d"),
        text_patterns=(re.compile(r"\bph\d{4}", re.I),),
    ),
    CodeRule(
        "fram",
        CategoryTag.AIR_FILTER,
        code_pattern=re.compile(r"^CA\d"),
        text_patterns=(re.compile(r"\bca\d{4,}", re.I),),
    ),
    CodeRule(
        "fram",
        CategoryTag.CABIN_AIR_FILTER,
        code_pattern=re.compile(r"^CF\d"),
        text_patterns=(re.compile(r"\bcf\d+", re.I),),
    ),
    CodeRule(
        "fram",
        CategoryTag.FUEL_FILTER,
        code_pattern=re.compile(r"^G\d"),
        text_patterns=(re.compile(r"\bg\d{4}", re.I),),
    ),
    # Bosch: OB/OF oil
    CodeRule(
        "bosch",
        CategoryTag.OIL_FILTER,
        ("OB", "OF"),
        text_patterns=(re.compile(r"\bo[bf]\d+", re.I),),
    ),
)

LUBRICANT_KEYWORDS = (
    "óleo", "oleo", "lubrificante",
    "castrol", "mobil", "shell helix", "petronas", "selenia",
    "motul", "lubrax", "total quartz",
    "sintético", "sintetico",
)

FILTER_BRANDS = ("wega", "tecfil", "fram", "mann", "mahle", "bosch filter")

FILTER_SUBRULES: tuple[DescriptionRule, ...] = (
    DescriptionRule(
        CategoryTag.CABIN_AIR_FILTER,
        keywords=(
            "ar condicionado", "cabine", "cabin",
            "antipolen", "anti-polen", "antipólen", "anti-pólen",
            "carvão ativado", "carvao ativado",
        ),
    ),
    DescriptionRule(
        CategoryTag.FUEL_FILTER,
        keywords=("combustível", "combustivel", "diesel", "gasolina", "fuel"),
    ),
    DescriptionRule(CategoryTag.AIR_FILTER, keywords=("ar motor", "ar do motor")),
    DescriptionRule(
        CategoryTag.AIR_FILTER,
        patterns=(re.compile(r"\bar\b"),),
        excludes=("condicionado",),
    ),
)

DESCRIPTION_RULES: tuple[DescriptionRule, ...] = (
    DescriptionRule(CategoryTag.OIL_LUBRICANT, LUBRICANT_KEYWORDS, (VISCOSITY_PATTERN,)),
    # bare "filtro X" defaults to oil filter
    DescriptionRule(CategoryTag.OIL_FILTER, ("filtro", "filter"), subrules=FILTER_SUBRULES),
    DescriptionRule(CategoryTag.OIL_FILTER, FILTER_BRANDS),
    DescriptionRule(
        CategoryTag.ADDITIVE,
        (
            "aditivo", "arla", "anticorrosivo", "antiferrugem", "radiador",
            "coolant", "limpa bico", "limpa injetor", "descarbonizante",
        ),
    ),
    DescriptionRule(CategoryTag.GREASE, ("graxa", "grease", "chassis", "rolamento")),
    # brake and hydraulic fluids are filed as accessories
    DescriptionRule(
        CategoryTag.ACCESSORY,
        ("fluido", "dot4", "dot 4", "freio", "direção hidráulica", "direcao hidraulica"),
    ),
)

DEFAULT_RULES = RuleSet(code_rules=CODE_RULES, description_rules=DESCRIPTION_RULES)


def classify(
    description: Optional[str],
    supplier_code: Optional[str] = None,
    rules: RuleSet = DEFAULT_RULES,
) -> CategoryTag:
    """
    Detect the inventory category of an invoice item.
    Always returns exactly one tag; rules.fallback (OTHER) when nothing matches.
    """
    text = str(description or "").lower()
    code = str(supplier_code or "").strip().upper()

    for rule in rules.code_rules:
        if rule.matches(code, text):
            return rule.tag

    for rule in rules.description_rules:
        tag = rule.resolve(text)
        if tag is not None:
            return tag

    return rules.fallback


def category_label(tag: CategoryTag | str) -> str:
    """Human label for a tag; unknown values are returned unchanged."""
    if isinstance(tag, CategoryTag):
        return tag.label
    try:
        return CategoryTag(str(tag).upper()).label
    except ValueError:
        return str(tag)
