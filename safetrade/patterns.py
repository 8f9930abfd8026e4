"""
patterns.py — Fraud Pattern Table
=================================

The ordered catalogue of scam rules applied to every chat message. Each rule
is (pattern_id, matcher, weight, description). Table order is evaluation
order, and evaluation order is the order flags appear in a verdict.

Weight calibration (tiers: low <= 10 < medium <= 35 < high <= 60 < critical):
    - Every catalogue weight is above 10, so any single hit leaves "low".
    - Every catalogue weight is at least 18, so any two hits exceed 35 and
      land in "high" or above.
    - PAYMENT_SCAM and HIGH_RISK_CONTENT alone exceed 35.
    - The auxiliary heuristics at the end are low-weight and never leave
      "low" on their own.

Pattern ids are part of the public contract; consumers branch on them.
"""

from dataclasses import dataclass
from typing import Tuple

from safetrade.matchers import (
    AllOf,
    AmountSpreadMatcher,
    AnyOf,
    KeywordMatcher,
    LengthMatcher,
    Matcher,
    RegexMatcher,
    RepeatedMatcher,
)


@dataclass(frozen=True)
class FraudRule:
    pattern_id: str
    matcher: Matcher
    weight: int
    description: str


# ================================================================
# SHARED CUES: reused by more than one rule
# ================================================================

URGENCY_CUES = AnyOf(
    KeywordMatcher(
        "urgent", "urgently", "asap", "right now", "today only",
        "limited time", "time sensitive", "expires soon", "act fast",
        "don't wait", "last chance", "quick sale", "hurry up",
        "must sell now", "must sell today", "must sell quickly", "must sell fast",
        "need to sell fast", "need to sell quickly", "need it gone today",
        "pay immediately", "immediate payment", "first come first served",
        "leaving town", "leaving the country", "leave the country",
        "leaving the state",
    ),
    RegexMatcher(r'!{3,}'),
)

PAYMENT_CUES = AnyOf(
    KeywordMatcher(
        "western union", "moneygram", "money gram", "wire transfer",
        "bank transfer", "wire the money", "send money", "send the money",
        "cashier's check", "cashiers check", "certified check", "money order",
        "bitcoin", "btc", "crypto", "cryptocurrency",
        "gift card", "gift cards", "itunes card", "google play card",
        "steam card", "amazon gift card", "prepaid card", "prepaid cards",
        "paypal friends and family", "overpayment", "advance payment",
        "upfront payment", "deposit first",
    ),
    # "wire $5000", "wire me the money", "wire the deposit"
    RegexMatcher(r'\bwire\s(?:me\s)?(?:the\s)?(?:money|funds|payment|deposit|\$\s?\d[\d,]*)'),
)


# ================================================================
# CATALOGUE RULES
# ================================================================

HIGH_RISK_CONTENT = FraudRule(
    "HIGH_RISK_CONTENT",
    AnyOf(
        KeywordMatcher(
            "not a scam", "not a scammer", "no scam", "not scamming you",
            "this is not fraud", "not fraud", "100% legit", "totally legit",
            "money laundering", "blackmail", "extortion", "ransom",
        ),
        # Irreversible payment demanded under time pressure
        AllOf(PAYMENT_CUES, URGENCY_CUES),
    ),
    50,
    "Explicit high-risk scam language",
)

URGENCY = FraudRule(
    "URGENCY",
    URGENCY_CUES,
    20,
    "Urgency pressure tactics",
)

PAYMENT_SCAM = FraudRule(
    "PAYMENT_SCAM",
    PAYMENT_CUES,
    40,
    "Suspicious payment methods",
)

SHIPPING_SCAM = FraudRule(
    "SHIPPING_SCAM",
    AllOf(
        KeywordMatcher(
            "ship", "ships", "shipped", "shipping", "deliver", "delivered",
            "delivery", "freight", "transport company",
        ),
        AnyOf(
            KeywordMatcher(
                "extra fee", "extra fees", "additional fee", "additional fees",
                "shipping cost", "shipping costs", "shipping fee", "shipping fees",
                "courier", "fedex", "dhl", "ups", "usps",
                "shipping agent", "delivery agent", "delivery service",
                "pick-up agent", "pickup agent", "customs fee", "insurance fee",
            ),
            RegexMatcher(r'\b(?:pay|send)\s(?:an?\s)?extra\b'),
        ),
    ),
    25,
    "Shipping/remote transaction attempts",
)

IMPERSONATION = FraudRule(
    "IMPERSONATION",
    AnyOf(
        KeywordMatcher(
            "on behalf of", "acting for", "selling for a friend",
            "my father's", "my fathers", "my husband's", "my wife's",
            "my son's", "my brother's", "my late husband", "my late father",
            "deceased father", "deceased husband", "deceased owner",
            "estate sale", "inheritance", "deployed overseas",
            "military deployment", "i am deployed", "i'm deployed",
        ),
        RegexMatcher(
            r"\bmy (?:late |deceased )?(?:wife|husband|son|daughter|father|mother|brother|uncle|dad|mom)"
            r"(?:'s)? (?:bike|motorcycle|is selling|is handling|is deployed)"
        ),
    ),
    22,
    "Potential impersonation",
)

COMMUNICATION_REDIRECT = FraudRule(
    "COMMUNICATION_REDIRECT",
    AnyOf(
        KeywordMatcher(
            "call me", "text me", "email me", "e-mail me", "contact me at",
            "reach me at", "my number is", "my personal email",
            "whatsapp", "whats app", "telegram", "signal app", "wechat",
            "outside this platform", "outside the platform", "outside this app",
            "outside this site", "off platform", "off the platform", "off-platform",
        ),
        # North American phone numbers: 555-123-4567, (555) 123 4567, +1.555.123.4567
        RegexMatcher(r'(?<!\d)(?:\+?1[-. ]?)?\(?\d{3}\)?[-. ]?\d{3}[-. ]?\d{4}(?!\d)'),
        # E-mail addresses; anchored and bounded so a long token is tried once
        RegexMatcher(
            r'(?<![\w.%+-])[\w.%+-]{1,64}@[\w-]{1,63}(?:\.[\w-]{1,63})*\.[a-z]{2,24}'
        ),
    ),
    20,
    "Attempt to move communication off-platform",
)

PRICE_MANIPULATION = FraudRule(
    "PRICE_MANIPULATION",
    KeywordMatcher(
        "cash only", "special discount", "best price guaranteed",
        "price guaranteed", "discount for cash", "cash discount",
        "lowest price", "special price", "deal of a lifetime",
        "too good to be true", "below market", "below market value",
        "wholesale price", "dealer price",
    ),
    18,
    "Suspicious pricing tactics",
)

VERIFICATION_BYPASS = FraudRule(
    "VERIFICATION_BYPASS",
    KeywordMatcher(
        "no inspection", "no inspection needed", "no need to inspect",
        "no need for an inspection", "skip the inspection", "sight unseen",
        "don't need to see", "no need to see", "no viewing", "no test ride",
        "no test rides", "no questions asked", "trust me", "honest seller",
    ),
    22,
    "Attempt to bypass verification",
)

EMOTIONAL_MANIPULATION = FraudRule(
    "EMOTIONAL_MANIPULATION",
    KeywordMatcher(
        "medical bills", "medical emergency", "hospital bills", "in the hospital",
        "family emergency", "please help", "help me out", "deceased", "funeral",
        "financial hardship", "lost my job", "desperate", "need the money",
        "single mother", "single father", "sick child", "god fearing",
        "please understand",
    ),
    18,
    "Emotional manipulation tactics",
)


# ================================================================
# AUXILIARY HEURISTICS: only signals that cannot shrink as text grows
# ================================================================

EXCESSIVE_PUNCTUATION = FraudRule(
    "EXCESSIVE_PUNCTUATION",
    RepeatedMatcher(r'[!?]{2,}', min_count=3),
    8,
    "Excessive punctuation marks",
)

EXTREMELY_LONG = FraudRule(
    "EXTREMELY_LONG",
    LengthMatcher(1000),
    5,
    "Unusually long message",
)

# Asking price quoted one way and then another ("$5,000 ... send $1,200")
PRICE_INCONSISTENCY = FraudRule(
    "PRICE_INCONSISTENCY",
    AmountSpreadMatcher(factor=2.0),
    10,
    "Inconsistent prices quoted",
)

# Scripted-message phrasing; only counts once it recurs
POOR_GRAMMAR = FraudRule(
    "POOR_GRAMMAR",
    RepeatedMatcher(
        r"\b(?:(?:am|is|are) been|was went|more better|your welcome|its important)\b",
        min_count=4,
    ),
    10,
    "Multiple grammatical errors",
)


PATTERN_TABLE: Tuple[FraudRule, ...] = (
    HIGH_RISK_CONTENT,
    URGENCY,
    PAYMENT_SCAM,
    SHIPPING_SCAM,
    IMPERSONATION,
    COMMUNICATION_REDIRECT,
    PRICE_MANIPULATION,
    VERIFICATION_BYPASS,
    EMOTIONAL_MANIPULATION,
    EXCESSIVE_PUNCTUATION,
    EXTREMELY_LONG,
    PRICE_INCONSISTENCY,
    POOR_GRAMMAR,
)
