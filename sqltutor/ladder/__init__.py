# sqltutor/ladder/__init__.py
# HintWise hint-ladder map: data classes and source loading.
#
# ENTRY POINT:
#   python -m sqltutor.ladder.converter [--source-root DIR] [--output PATH]
#
# The converter module is not imported here so that "python -m" runs it
# exactly once.

from .models import HintLevel, LadderArtifact, LadderEntry, SourceAsset
from .sources import DEFAULT_SOURCE_CANDIDATES, SourceCandidate, load_available_datasets

__all__ = [
    "HintLevel",
    "LadderArtifact",
    "LadderEntry",
    "SourceAsset",
    "DEFAULT_SOURCE_CANDIDATES",
    "SourceCandidate",
    "load_available_datasets",
]
