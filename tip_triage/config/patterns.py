"""Lexical patterns for tip text analysis and spam heuristics.

Regex strings are compiled by the consumers (TextAnalyzer, HoaxMatcher,
DuplicateDetector) with re.IGNORECASE.
"""

# Detail categories: each category present adds to detail richness once
DETAIL_PATTERNS = {
    "date": [
        r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b",
        r"\b(?:yesterday|today|last\s+night|this\s+morning)\b",
        r"\b\d{1,2}[/-]\d{1,2}(?:[/-]\d{2,4})?\b",
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.?\s+\d{1,2}\b",
    ],
    "time_of_day": [
        r"\b\d{1,2}:\d{2}\s*(?:am|pm)?\b",
        r"\b\d{1,2}\s*(?:am|pm)\b",
        r"\b(?:noon|midnight|dawn|dusk|morning|afternoon|evening)\b",
    ],
    "place": [
        r"\b(?:street|st\.?|avenue|ave\.?|road|rd\.?|boulevard|blvd|highway|hwy|lane)\b",
        r"\b(?:corner|intersection|station|park|mall|store|school|parking\s+lot|bus\s+stop)\b",
    ],
    "physical": [
        r"\b(?:hair|eyes|tall|short|height|weight|build|skinny|slim|heavy|tattoo|scar|glasses)\b",
        r"\b\d\s*(?:ft|foot|feet|')\s*\d{0,2}\b",
        r"\b(?:years?\s+old|teen(?:ager)?|toddler|child|girl|boy)\b",
    ],
    "clothing": [
        r"\b(?:wearing|jacket|hoodie|shirt|t-shirt|jeans|pants|dress|skirt|coat|hat|cap|backpack|shoes|sneakers)\b",
    ],
    "vehicle": [
        r"\b(?:car|truck|van|suv|sedan|motorcycle|bike|plate|license)\b",
    ],
    "direction": [
        r"\b(?:heading|walking|driving|going)\s+(?:north|south|east|west|towards?|into|down|up)\b",
        r"\b(?:northbound|southbound|eastbound|westbound)\b",
    ],
}

# Hedging language reduces specificity
HEDGE_PATTERNS = [
    r"\bi\s+think\b",
    r"\bthought\b",
    r"\bmaybe\b",
    r"\bmight\b",
    r"\bpossibly\b",
    r"\bprobably\b",
    r"\bnot\s+sure\b",
    r"\bunsure\b",
    r"\bi\s+guess\b",
    r"\bsimilar\b",
    r"\blooked\s+like\b",
    r"\bkind\s+of\b",
    r"\bsort\s+of\b",
]

# Emotionally charged or over-assertive phrasing reduces neutrality
CHARGED_PATTERNS = [
    r"\bomg\b",
    r"\bdesperate\b",
    r"\bhorrible\b",
    r"\bevil\b",
    r"\bmonster\b",
    r"\bdefinitely\b",
    r"\b100\s*%",
    r"\bi\s+swear\b",
    r"\bi\s+promise\b",
    r"\bguaranteed?\b",
]

# Descriptor pairs ("red jacket", "brown hair") for case-fact consistency
DESCRIPTOR_COLORS = [
    "black", "white", "red", "blue", "green", "yellow", "orange", "purple",
    "pink", "brown", "gray", "grey", "blonde", "blond", "dark", "light",
    "silver", "gold", "tan", "navy",
]
DESCRIPTOR_ITEMS = [
    "hair", "eyes", "jacket", "hoodie", "shirt", "t-shirt", "jeans", "pants",
    "dress", "skirt", "coat", "hat", "cap", "backpack", "shoes", "sneakers",
    "car", "truck", "van", "suv", "sedan",
]

# Spam heuristics (indicator name -> patterns)
PAYMENT_REQUEST_PATTERNS = [
    r"\bsend\s+(?:me\s+|us\s+)?(?:the\s+)?money\b",
    r"\bwire\s+(?:money|transfer|funds)\b",
    r"\bwestern\s+union\b",
    r"\bmoney\s*gram\b",
    r"\bgift\s+cards?\b",
    r"\bbitcoin\b|\bcrypto(?:currency)?\b",
    r"\b(?:paypal|venmo|cash\s*app|zelle)\b",
    r"\breward\s+(?:first|upfront|up\s+front|in\s+advance)\b",
    r"\bpay(?:ment)?\s+(?:me|us|required|first)\b",
    r"\bprocessing\s+fee\b",
]

URGENCY_PRESSURE_PATTERNS = [
    r"\bact\s+now\b",
    r"\blast\s+chance\b",
    r"\bbefore\s+it'?s\s+too\s+late\b",
    r"\bwithin\s+\d+\s+(?:hours?|minutes?)\s+or\b",
    r"\bimmediately\s+or\b",
    r"\bdon'?t\s+(?:tell|contact|call)\s+(?:the\s+)?(?:police|cops|fbi)\b",
    r"\btime\s+is\s+running\s+out\b",
]

IDENTITY_CLAIM_PATTERNS = [
    r"\bi\s+am\s+(?:a\s+|an\s+)?(?:police|detective|officer|agent|fbi|investigator|lawyer)\b",
    r"\bi'?m\s+(?:a\s+|an\s+)?(?:police|detective|officer|agent|fbi|investigator|lawyer)\b",
    r"\bi\s+am\s+(?:her|his|their)\s+(?:father|mother|brother|sister|uncle|aunt|cousin)\b",
    r"\bi'?m\s+(?:her|his|their)\s+(?:father|mother|brother|sister|uncle|aunt|cousin)\b",
]

URL_PATTERN = r"https?://\S+|www\.\S+"

__all__ = [
    "DETAIL_PATTERNS",
    "HEDGE_PATTERNS",
    "CHARGED_PATTERNS",
    "DESCRIPTOR_COLORS",
    "DESCRIPTOR_ITEMS",
    "PAYMENT_REQUEST_PATTERNS",
    "URGENCY_PRESSURE_PATTERNS",
    "IDENTITY_CLAIM_PATTERNS",
    "URL_PATTERN",
]
