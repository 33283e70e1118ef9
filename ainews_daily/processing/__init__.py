"""Content processing module."""

from .dedupe import DedupIndex, DuplicateGroup, dedupe, fingerprint, group_near_duplicates, item_id
from .enrichment import ItemEnricher, StepResult, enrich_item
from .gate import ConfidenceGate, accept
from .language import LanguageFilter, detect_language
from .merge import MergeResult, merge, merge_items, previously_seen_ids
from .ranking import rank_items, ranking_key
from .relevance import RelevanceFilter, filter_relevance
from .text_utils import clean_html_text, normalize_title, title_similarity

__all__ = [
    'filter_relevance',
    'RelevanceFilter',
    'fingerprint',
    'item_id',
    'dedupe',
    'DedupIndex',
    'DuplicateGroup',
    'group_near_duplicates',
    'enrich_item',
    'ItemEnricher',
    'StepResult',
    'detect_language',
    'LanguageFilter',
    'accept',
    'ConfidenceGate',
    'merge',
    'merge_items',
    'MergeResult',
    'previously_seen_ids',
    'rank_items',
    'ranking_key',
    'clean_html_text',
    'normalize_title',
    'title_similarity',
]
