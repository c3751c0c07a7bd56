"""
Keyword extraction for object resolution.

Keywords come from business-term clusters, custom object API names and
org-specific synonyms. Words that match none of these are kept aside as
residual tokens; only the fuzzy stage looks at them, which is how typos
such as "custmers" still reach Account.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from sfplanner.entity_resolution.profile import OrgProfile
from sfplanner.entity_resolution.similarity import similarity


@dataclass(frozen=True)
class TermCluster:
    """Synonymous business terms and the standard object variant they name"""
    terms: Tuple[str, ...]
    standard_key: str
    
    @property
    def pattern(self) -> "re.Pattern":
        return re.compile(r'\b(' + '|'.join(self.terms) + r')\b')


BUSINESS_TERM_CLUSTERS: List[TermCluster] = [
    TermCluster(('account', 'accounts', 'customer', 'customers', 'client', 'clients'), 'account'),
    TermCluster(('contact', 'contacts', 'person', 'people', 'individual'), 'contact'),
    TermCluster(('opportunity', 'opportunities', 'deal', 'deals', 'sale', 'sales'), 'opportunity'),
    TermCluster(('lead', 'leads', 'prospect', 'prospects'), 'lead'),
    TermCluster(('case', 'cases', 'ticket', 'tickets', 'issue', 'issues'), 'case'),
    TermCluster(('product', 'products', 'item', 'items'), 'product'),
    TermCluster(('order', 'orders', 'purchase', 'purchases'), 'order'),
    TermCluster(('invoice', 'invoices', 'bill', 'bills'), 'invoice'),
]

CUSTOM_OBJECT_LOWER_RE = re.compile(r'\b([a-z][a-z0-9_]*__c)\b')
CUSTOM_OBJECT_API_RE = re.compile(r'\b[A-Z][a-zA-Z0-9_]*__c\b')
TOKEN_RE = re.compile(r"[a-z][a-z0-9_']*")

STOP_WORDS = {
    'show', 'list', 'give', 'find', 'what', 'which', 'where', 'when', 'who',
    'how', 'many', 'much', 'with', 'from', 'that', 'this', 'these', 'those',
    'have', 'does', 'there', 'their', 'them', 'they', 'about', 'into',
    'your', 'mine', 'please', 'tell', 'last', 'next', 'recent', 'total',
    'count', 'summary', 'summarize', 'average', 'each', 'every', 'some',
    'over', 'under', 'than', 'were', 'been', 'being', 'would', 'could',
    'should', 'open', 'closed', 'month', 'months', 'year', 'years', 'week',
    'weeks', 'today', 'yesterday', 'group', 'grouped', 'table', 'chart',
    'records', 'record', 'data', 'all', 'the', 'and', 'for',
}


@dataclass
class ExtractedKeywords:
    keywords: List[str] = field(default_factory=list)
    residual_tokens: List[str] = field(default_factory=list)
    
    def all_terms(self) -> List[str]:
        return self.keywords + [t for t in self.residual_tokens if t not in self.keywords]


def singularize(word: str) -> Optional[str]:
    """Naive English singular for plural keywords; None if not plural"""
    if len(word) > 4 and word.endswith("ies"):
        return word[:-3] + "y"
    if len(word) > 3 and word.endswith("s") and not word.endswith("ss") and "__" not in word:
        return word[:-1]
    return None


class KeywordExtractor:
    """Derive object keywords from a question"""
    
    def __init__(self, min_length: int = 3,
                 clusters: Optional[List[TermCluster]] = None):
        self.min_length = min_length
        self.clusters = clusters or BUSINESS_TERM_CLUSTERS
    
    def extract(self, question: str, org_profile: Optional[OrgProfile] = None) -> ExtractedKeywords:
        question = question or ""
        lower = question.lower()
        found: List[str] = []
        
        def add(keyword: str):
            keyword = keyword.strip().lower()
            if keyword and keyword not in found:
                found.append(keyword)
        
        for cluster in self.clusters:
            for match in cluster.pattern.finditer(lower):
                add(match.group(0))
        
        for match in CUSTOM_OBJECT_LOWER_RE.finditer(lower):
            add(match.group(1))
        for match in CUSTOM_OBJECT_API_RE.finditer(question):
            add(match.group(0))
        
        if org_profile:
            for canonical_name, synonyms in org_profile.object_synonyms.items():
                for synonym in synonyms or []:
                    if synonym and synonym.lower() in lower:
                        add(synonym)
                        add(canonical_name)
        
        # Plural keywords also match singular variants
        for keyword in list(found):
            singular = singularize(keyword)
            if singular:
                add(singular)
        
        keywords = [k for k in found if len(k) >= self.min_length]
        
        residual: List[str] = []
        for token in TOKEN_RE.findall(lower):
            token = token.strip("'_")
            if (len(token) >= 4 and token not in STOP_WORDS
                    and token not in keywords and token not in residual):
                residual.append(token)
        
        return ExtractedKeywords(keywords=keywords, residual_tokens=residual)
    
    def bridge_terms(self, token: str, threshold: float) -> List[Tuple[str, str, float]]:
        """
        Standard object variants whose business terms are close to `token`.
        Returns (standard_key, closest_term, similarity) per cluster.
        """
        bridges = []
        for cluster in self.clusters:
            best_term, best_score = None, 0.0
            for term in cluster.terms:
                score = similarity(token, term)
                if score > best_score:
                    best_term, best_score = term, score
            if best_term and best_score >= threshold:
                bridges.append((cluster.standard_key, best_term, best_score))
        bridges.sort(key=lambda b: b[2], reverse=True)
        return bridges
