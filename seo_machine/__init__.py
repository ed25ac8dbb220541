# __init__.py

__version__ = "1.0.0"

from .content_length_comparator import ContentLengthComparator
from .content_scrubber import ContentScrubber, scrub_content
from .keyword_analyzer import KeywordAnalyzer
from .readability_scorer import ReadabilityScorer
from .search_intent_analyzer import SearchIntent, SearchIntentAnalyzer
from .seo_quality_rater import SEOQualityRater
from .ahrefs import Ahrefs
from .data_for_seo import DataForSEO
from .google_analytics import GoogleAnalytics
from .google_search_console import GoogleSearchConsole
from .data_aggregator import DataAggregator

__all__ = [
    "Ahrefs",
    "ContentLengthComparator",
    "ContentScrubber",
    "DataAggregator",
    "DataForSEO",
    "GoogleAnalytics",
    "GoogleSearchConsole",
    "KeywordAnalyzer",
    "ReadabilityScorer",
    "SEOQualityRater",
    "SearchIntent",
    "SearchIntentAnalyzer",
    "scrub_content",
]
