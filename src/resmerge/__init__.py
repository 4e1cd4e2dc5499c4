"""Merger of resolution levels of clusterings in the CNL format."""

from resmerge.__version__ import __version__
from resmerge.merge import extract_base, load_nodes, merge_collections
from resmerge.result import Err, Ok, Result
from resmerge.utils import CollectionFile, create_output, open_inputs

__all__ = [
    "__version__",
    "CollectionFile",
    "Err",
    "Ok",
    "Result",
    "create_output",
    "extract_base",
    "load_nodes",
    "merge_collections",
    "open_inputs",
]
