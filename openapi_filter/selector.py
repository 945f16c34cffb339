"""
Path and operation selection for OpenAPI Filter.
"""

import logging
import re
from typing import Any, Dict, Iterable, List, NamedTuple, Optional, Set, Tuple, Union

logger = logging.getLogger(__name__)

HTTP_METHODS = frozenset(['get', 'put', 'post', 'delete', 'options', 'head', 'patch', 'trace'])


class SelectionResult(NamedTuple):
    """Filtered paths plus the tags used by the operations that survived."""

    paths: Dict[str, Any]
    used_tags: Set[str]


def dedupe_parameters(parameters: List[Any]) -> List[Any]:
    """
    Drop repeated parameters, keyed by location and name.

    The first occurrence wins and the original order is kept. Entries that
    are not mappings (or ``$ref`` parameters without ``in``/``name``) are
    keyed by whatever they carry, so distinct references are never merged.

    Args:
        parameters: Operation parameter list

    Returns:
        New list with duplicates removed
    """
    unique = []
    seen: Set[Tuple[Any, ...]] = set()
    for parameter in parameters:
        if isinstance(parameter, dict):
            if 'in' in parameter or 'name' in parameter:
                key: Tuple[Any, ...] = ('param', parameter.get('in'), parameter.get('name'))
            else:
                key = ('ref', repr(parameter.get('$ref')))
        else:
            key = ('raw', repr(parameter))
        if key in seen:
            logger.debug(f"Dropping duplicate parameter {key[1:]}")
            continue
        seen.add(key)
        unique.append(parameter)
    return unique


def operation_matches(operation: Any, tags: Set[str]) -> bool:
    """Return True if the operation shares a tag with ``tags`` or ``tags`` is empty."""
    if not tags:
        return True
    if not isinstance(operation, dict):
        return False
    return any(tag in tags for tag in operation.get('tags') or [])


def select_paths(
    paths: Any,
    tags: Iterable[str] = (),
    path_pattern: Union[str, re.Pattern, None] = None,
) -> SelectionResult:
    """
    Keep the operations matching the tag set and path pattern.

    Args:
        paths: ``paths`` mapping of the working document; retained operations
            have their parameter lists deduplicated in place
        tags: Tag names, OR-matched; empty keeps every operation
        path_pattern: Regular expression searched in each path string

    Returns:
        SelectionResult with the filtered paths and the used tags
    """
    tag_set = set(tags)
    regex: Optional[re.Pattern] = None
    if path_pattern is not None:
        regex = re.compile(path_pattern) if isinstance(path_pattern, str) else path_pattern

    filtered: Dict[str, Any] = {}
    used_tags: Set[str] = set()

    if not isinstance(paths, dict):
        return SelectionResult(filtered, used_tags)

    for path, path_item in paths.items():
        if regex is not None and not regex.search(path):
            continue
        if not isinstance(path_item, dict):
            logger.debug(f"Skipping non-mapping path item: {path}")
            continue

        filtered_item: Dict[str, Any] = {}
        has_operations = False

        for method, operation in path_item.items():
            if method not in HTTP_METHODS:
                filtered_item[method] = operation
                continue
            if not operation_matches(operation, tag_set) or not isinstance(operation, dict):
                continue

            used_tags.update(operation.get('tags') or [])
            if isinstance(operation.get('parameters'), list):
                operation['parameters'] = dedupe_parameters(operation['parameters'])
            filtered_item[method] = operation
            has_operations = True

        if has_operations:
            filtered[path] = filtered_item

    logger.debug(f"Selected {len(filtered)} of {len(paths)} paths")
    return SelectionResult(filtered, used_tags)
