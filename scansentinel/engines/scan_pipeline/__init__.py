"""Scan pipeline engine — traverse a repository, analyze files, summarize findings."""

from scansentinel.engines.scan_pipeline.aggregator import AnalysisAggregator
from scansentinel.engines.scan_pipeline.analysis_client import LLMAnalysisClient
from scansentinel.engines.scan_pipeline.errors import RateLimitError
from scansentinel.engines.scan_pipeline.github_client import GitHubClient
from scansentinel.engines.scan_pipeline.github_source import GitHubRepositorySource
from scansentinel.engines.scan_pipeline.lifecycle import ScanLifecycleManager
from scansentinel.engines.scan_pipeline.models import AnalysisUnit, Finding, Summary
from scansentinel.engines.scan_pipeline.summarizer import SummaryGenerator
from scansentinel.engines.scan_pipeline.traverser import RepositoryTraverser

__all__ = [
    "AnalysisAggregator",
    "AnalysisUnit",
    "Finding",
    "GitHubClient",
    "GitHubRepositorySource",
    "LLMAnalysisClient",
    "RateLimitError",
    "RepositoryTraverser",
    "ScanLifecycleManager",
    "Summary",
    "SummaryGenerator",
]
