"""
Output assembly for OpenAPI Filter.
"""

import copy
import logging
from typing import Any, Dict, List, Mapping, Set

from .resolver import COMPONENT_TYPES, INTERNAL_MARKER, is_internal  # noqa: F401

logger = logging.getLogger(__name__)

# Fields dropped from the output when they end up empty
PRUNED_WHEN_EMPTY = ('components', 'security', 'tags')


def filter_components(
    components: Any,
    reachable: Mapping[str, Set[str]],
    exclude_internal: bool = False,
) -> Dict[str, Any]:
    """
    Keep the reachable entries of each recognised component category.

    Args:
        components: Source ``components`` mapping
        reachable: Reachable names per category
        exclude_internal: Drop entries flagged with the internal marker

    Returns:
        Filtered components, without empty categories
    """
    filtered: Dict[str, Any] = {}
    if not isinstance(components, dict):
        return filtered

    for category in COMPONENT_TYPES:
        section = components.get(category)
        if not isinstance(section, dict):
            continue
        names = reachable.get(category, set())
        kept = {
            name: definition
            for name, definition in section.items()
            if name in names and not (exclude_internal and is_internal(definition))
        }
        if kept:
            filtered[category] = kept
        logger.debug(f"Kept {len(kept)} of {len(section)} {category}")

    return filtered


def filter_tags(tags: Any, used_tags: Set[str], exclude_internal: bool = False) -> List[Any]:
    """
    Keep the tag descriptors whose name was used by a retained operation.

    Args:
        tags: Source top-level ``tags`` list
        used_tags: Tag names used by retained operations
        exclude_internal: Drop tags flagged with the internal marker

    Returns:
        Filtered tag list in source order
    """
    if not isinstance(tags, list):
        return []
    return [
        tag for tag in tags
        if isinstance(tag, dict)
        and tag.get('name') in used_tags
        and not (exclude_internal and is_internal(tag))
    ]


def assemble_spec(
    source: Dict[str, Any],
    working: Dict[str, Any],
    paths: Dict[str, Any],
    reachable: Mapping[str, Set[str]],
    used_tags: Set[str],
    exclude_internal: bool = False,
) -> Dict[str, Any]:
    """
    Rebuild the working document as the filtered output.

    Args:
        source: Original document, read only
        working: Deep copy of the source, modified in place
        paths: Filtered ``paths`` mapping
        reachable: Reachable names per category
        used_tags: Tag names used by retained operations
        exclude_internal: Drop internally-marked components and tags

    Returns:
        The working document
    """
    working['paths'] = paths

    if 'components' in source:
        working['components'] = filter_components(
            working.get('components'), reachable, exclude_internal
        )

    # Legacy root-level placement, carried as-is
    if 'securitySchemes' in source:
        working['securitySchemes'] = copy.deepcopy(source['securitySchemes'])

    working['tags'] = filter_tags(working.get('tags'), used_tags, exclude_internal)

    for field in PRUNED_WHEN_EMPTY:
        if field in working and not working[field]:
            del working[field]

    return working
