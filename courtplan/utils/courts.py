"""
Court naming helpers.

The engine only knows positional courts (1..N). Operators name them ("Court 3",
"Centre", "1,5,6"); these helpers turn a court index back into that name and
accept the names either as a list or as a comma separated string.
"""
from typing import List, Optional, Union


def court_label_for_index(court_names: Optional[Union[str, List[str]]], court_number: int) -> str:
    """
    Return the label of a 1-based court index.
    Falls back to the index itself when no (or too few) names are configured.
    """
    labels = parse_court_names(court_names)
    if labels and 1 <= court_number <= len(labels):
        return labels[court_number - 1]
    return str(court_number)


def court_index_for_label(court_names: Optional[Union[str, List[str]]], label: Optional[str]) -> Optional[int]:
    """Inverse of court_label_for_index. Returns None for an unknown label."""
    if label is None:
        return None
    label = str(label).strip()
    labels = parse_court_names(court_names)
    if label in labels:
        return labels.index(label) + 1
    if label.isdigit():
        return int(label)
    return None


def parse_court_names(court_names: Optional[Union[str, List[str]]]) -> List[str]:
    """
    Normalize court_names to a list of non-empty strings.

    - None or "" -> []
    - "Court 1, Court 2" -> ["Court 1", "Court 2"]
    - ["Court 1", " Centre "] -> ["Court 1", "Centre"]
    """
    if court_names is None:
        return []
    if isinstance(court_names, str):
        s = court_names.strip()
        if not s:
            return []
        return [x.strip() for x in s.split(",") if x.strip()]
    if isinstance(court_names, (list, tuple)):
        return [str(x).strip() for x in court_names if str(x).strip()]
    return []


def default_court_names(court_count: int) -> List[str]:
    """["Court 1", ..., "Court N"] for a tournament created without names."""
    return [f"Court {i}" for i in range(1, court_count + 1)]
