"""
Question intent, time sensitivity and name search terms.
"""

import re
from enum import Enum
from typing import List


class Intent(str, Enum):
    VISUALIZE = "visualize"
    AGGREGATE = "aggregate"
    EXPLAIN_OBJECT = "explain_object"
    SEARCH = "search"
    LIST_RELATED_RECORDS = "list_related_records"
    ANSWER = "answer"


# First match wins
INTENT_PATTERNS = [
    (Intent.VISUALIZE, re.compile(r'chart|plot|graph')),
    (Intent.AGGREGATE, re.compile(r'\b(summarize|summary|sum|total|avg|average|count)\b|by month|\bgroup')),
    (Intent.EXPLAIN_OBJECT, re.compile(r'what is|explain|fields|describe')),
    (Intent.SEARCH, re.compile(r'search|find|locate|look.*for|where.*is|contains|matching')),
    (Intent.LIST_RELATED_RECORDS, re.compile(r'list|show|table')),
]

MONTHS = ('january|february|march|april|may|june|july|august|september|'
          'october|november|december')

TIME_SENSITIVE_PATTERNS = [
    re.compile(r'\b(last|recent|lately|yesterday|today|this|past)\s+'
               r'(week|month|year|quarter|day|days|months|years|quarters)\b'),
    re.compile(r'\b(last|past)\s+\d+\s+(day|days|week|weeks|month|months|year|years)\b'),
    re.compile(r'\bin\s+(the\s+)?(last|past|recent)\b'),
    re.compile(r'\b(recently|lately|newly)\s+(created|added|updated|modified)\b'),
    # Reporting questions usually want recent data
    re.compile(r'\b(summary|summarize|report|reporting|trend|trends|growth|performance)\b'),
    re.compile(r'\b(how\s+many|count|total|sum)\s+.*\s+(last|recent|this|past)\b'),
    re.compile(r'\b(since|from|after|before|until|through)\s+\d{4}\b'),
    re.compile(rf'\b({MONTHS})\b'),
    re.compile(r'\b(activity|activities|changes|modifications|updates)\b'),
    re.compile(r'\bwhat.*happened\b'),
    re.compile(r'\bwho.*created\b'),
    re.compile(r'\bwhen.*was.*created\b'),
]

QUESTION_WORDS_RE = re.compile(
    r'\b(what|is|the|of|for|in|on|at|with|by|from|about|how|where|when|which|who|why)\b'
)
MEASURE_WORDS_RE = re.compile(
    r'\b(percentage|percent|alcohol|content|level|amount|value|price|cost)\b'
)
QUOTED_RE = re.compile(r"'([^']+)'|\"([^\"]+)\"")
NON_WORD_RE = re.compile(r"[^\w']")

GENERIC_SEARCH_WORDS = {'wine', 'wines', 'product', 'products', 'item', 'items', 'thing', 'things'}

# Request verbs and object nouns that never name a record
NON_NAME_WORDS = {
    'show', 'list', 'give', 'find', 'search', 'table', 'chart', 'records',
    'record', 'please', 'summarize', 'summary', 'count', 'total', 'average',
    'group', 'grouped', 'there', 'these', 'those', 'their', 'many', 'much',
    'recent', 'recently', 'last', 'month', 'months', 'year', 'years', 'week',
    'weeks', 'today', 'yesterday', 'created', 'updated', 'modified',
    'named', 'called', 'containing', 'matching',
}


def detect_intent(question: str) -> Intent:
    """Classify a question; defaults to ANSWER"""
    q = (question or "").lower()
    for intent, pattern in INTENT_PATTERNS:
        if pattern.search(q):
            return intent
    return Intent.ANSWER


def is_question_time_sensitive(question: str) -> bool:
    """True if the question implies a date filter on recent records"""
    q = (question or "").lower()
    return any(pattern.search(q) for pattern in TIME_SENSITIVE_PATTERNS)


def extract_search_terms(question: str, extra_stop_words=()) -> List[str]:
    """
    Quoted phrases, then distinctive words (longer than four characters or
    containing an apostrophe), for Name LIKE filters.
    """
    clean = (question or "").lower()
    quoted = [a or b for a, b in QUOTED_RE.findall(clean)]
    
    clean = QUESTION_WORDS_RE.sub(' ', clean)
    clean = MEASURE_WORDS_RE.sub(' ', clean)
    clean = QUOTED_RE.sub(' ', clean).strip()
    
    skip = GENERIC_SEARCH_WORDS | NON_NAME_WORDS | {w.lower() for w in extra_stop_words}
    terms = [t.strip() for t in quoted if t.strip()]
    for word in clean.split():
        if "'" not in word and len(word) <= 4:
            continue
        word = NON_WORD_RE.sub('', word).strip("'")
        if len(word) > 2 and word not in terms and word not in skip:
            terms.append(word)
    
    return [t for t in terms if len(t) > 2]
