"""
Reference resolution for OpenAPI Filter.

Computes the set of reusable components reachable from a set of seed objects
(retained operations, root security requirements and forced component names).
"""

import logging
from collections import deque
from enum import Enum
from urllib.parse import unquote
from typing import Any, Deque, Dict, Iterable, List, Optional, Set, Tuple

# Configure logger
logger = logging.getLogger(__name__)

COMPONENT_TYPES = (
    'schemas',
    'responses',
    'parameters',
    'examples',
    'requestBodies',
    'headers',
    'securitySchemes',
)

FORCED_ERROR_SCHEMAS = (
    'Error',
    'Failure',
    'ValidationError',
    'AccessDeniedError',
    'AuthzError',
)

RESPONSE_DTO_KEY = 'x-responseDTO'

INTERNAL_MARKER = 'x-internal'

ReachableSet = Dict[str, Set[str]]


class EdgeKind(Enum):
    """Kinds of edges followed while walking a document node."""

    REFERENCE = 'reference'
    COMPOSITION = 'composition'
    PROPERTY = 'property'
    ITEM = 'item'
    PARAMETER = 'parameter'
    CONTENT = 'content'
    SECURITY = 'security'
    EXTENSION = 'extension'
    DISCRIMINATOR = 'discriminator'
    GENERIC = 'generic'


_KEY_KINDS = {
    '$ref': EdgeKind.REFERENCE,
    'allOf': EdgeKind.COMPOSITION,
    'anyOf': EdgeKind.COMPOSITION,
    'oneOf': EdgeKind.COMPOSITION,
    'properties': EdgeKind.PROPERTY,
    'items': EdgeKind.ITEM,
    'additionalProperties': EdgeKind.ITEM,
    'parameters': EdgeKind.PARAMETER,
    'content': EdgeKind.CONTENT,
    'security': EdgeKind.SECURITY,
    RESPONSE_DTO_KEY: EdgeKind.EXTENSION,
    'discriminator': EdgeKind.DISCRIMINATOR,
}


def classify_key(key: str) -> EdgeKind:
    """Return the edge kind a mapping key leads through."""
    return _KEY_KINDS.get(key, EdgeKind.GENERIC)


def is_internal(obj: Any) -> bool:
    """Return True if a component or tag carries the internal marker."""
    return isinstance(obj, dict) and bool(obj.get(INTERNAL_MARKER))


def _unescape_pointer(token: str) -> str:
    return token.replace('~1', '/').replace('~0', '~')


def parse_component_ref(ref: Any) -> Optional[Tuple[str, str]]:
    """
    Parse a ``$ref`` value into a (category, name) pair.

    Args:
        ref: The raw ``$ref`` value

    Returns:
        The (category, name) pair for local ``#/components/...`` pointers,
        or None for references that point elsewhere (external documents,
        other local locations)

    Raises:
        ValueError: If the reference is not a string or is a components
            pointer without a category and name
    """
    if not isinstance(ref, str):
        raise ValueError(f"reference must be a string, got {type(ref).__name__}")

    document, _, fragment = ref.partition('#')
    fragment = unquote(fragment)
    if document or not fragment.startswith('/components'):
        return None

    parts = fragment.split('/')
    if parts[1] != 'components':
        return None
    if len(parts) < 4 or not parts[2] or not parts[3]:
        raise ValueError(f"incomplete components pointer: {ref}")

    return _unescape_pointer(parts[2]), _unescape_pointer(parts[3])


class ComponentResolver:
    """
    Resolve the transitive closure of components reachable from seed objects.

    The resolver reads the source document without modifying it. Each
    distinct node object is walked at most once (identity, not equality),
    and every component is scanned once, when it first becomes reachable.
    Newly reachable components are queued and drained until no new name
    appears, which is the fixed point of the closure.
    """

    def __init__(self, spec: Dict[str, Any], exclude_internal: bool = False):
        self.spec = spec
        self.exclude_internal = exclude_internal
        components = spec.get('components') if isinstance(spec, dict) else None
        self.components = components if isinstance(components, dict) else {}
        self.reachable: ReachableSet = {category: set() for category in COMPONENT_TYPES}
        # id -> node; holding the node keeps its id from being reused
        self._visited: Dict[int, Any] = {}
        self._pending: Deque[Tuple[str, str]] = deque()

    def get_component(self, category: str, name: str) -> Any:
        """Return a component definition from the source, or None."""
        section = self.components.get(category)
        if not isinstance(section, dict):
            return None
        return section.get(name)

    def track(self, category: str, name: str) -> bool:
        """
        Mark a component as reachable and queue its definition for scanning.

        Args:
            category: Component category
            name: Component name within the category

        Returns:
            True if the name was newly added
        """
        names = self.reachable[category]
        if name in names:
            return False
        names.add(name)
        self._pending.append((category, name))
        logger.debug(f"Tracking {category}/{name}")
        return True

    def collect_references(self, node: Any) -> None:
        """
        Walk a node and track every component it references.

        Args:
            node: Any document value (mapping, sequence or scalar)
        """
        if isinstance(node, dict):
            if id(node) in self._visited:
                return
            self._visited[id(node)] = node
            for key, value in node.items():
                kind = classify_key(key)
                self._EDGE_HANDLERS[kind](self, value)
        elif isinstance(node, list):
            if id(node) in self._visited:
                return
            self._visited[id(node)] = node
            for item in node:
                self.collect_references(item)

    def _follow_reference(self, ref: Any) -> None:
        try:
            parsed = parse_component_ref(ref)
        except ValueError as e:
            logger.warning(f"Invalid $ref: {ref!r} ({e})")
            return
        if parsed is None:
            return
        category, name = parsed
        if category in self.reachable:
            self.track(category, name)

    def _follow_members(self, members: Any) -> None:
        if isinstance(members, list):
            for member in members:
                self.collect_references(member)
        else:
            self.collect_references(members)

    def _follow_properties(self, properties: Any) -> None:
        # Keys here are property names, never keywords
        if isinstance(properties, dict):
            for schema in properties.values():
                self.collect_references(schema)

    def _follow_content(self, content: Any) -> None:
        # Keys here are media types
        if isinstance(content, dict):
            for media in content.values():
                self.collect_references(media)
        else:
            self.collect_references(content)

    def _follow_security(self, requirements: Any) -> None:
        if not isinstance(requirements, list):
            self.collect_references(requirements)
            return
        for requirement in requirements:
            if isinstance(requirement, dict):
                for scheme_name in requirement:
                    self.track('securitySchemes', scheme_name)

    def _follow_extension(self, value: Any) -> None:
        if isinstance(value, str) and value:
            self.track('schemas', value)
        else:
            self.collect_references(value)

    def _follow_discriminator(self, discriminator: Any) -> None:
        if not isinstance(discriminator, dict):
            return
        mapping = discriminator.get('mapping')
        if not isinstance(mapping, dict):
            return
        for target in mapping.values():
            if isinstance(target, str) and not target.startswith('#') and '/' not in target:
                self.track('schemas', target)
            else:
                self._follow_reference(target)

    _EDGE_HANDLERS = {
        EdgeKind.REFERENCE: _follow_reference,
        EdgeKind.COMPOSITION: _follow_members,
        EdgeKind.PROPERTY: _follow_properties,
        EdgeKind.ITEM: collect_references,
        EdgeKind.PARAMETER: _follow_members,
        EdgeKind.CONTENT: _follow_content,
        EdgeKind.SECURITY: _follow_security,
        EdgeKind.EXTENSION: _follow_extension,
        EdgeKind.DISCRIMINATOR: _follow_discriminator,
        EdgeKind.GENERIC: collect_references,
    }

    def seed_operations(self, paths: Dict[str, Any]) -> None:
        """
        Scan every retained path item, operations and path-level keys alike.

        Args:
            paths: Filtered ``paths`` mapping
        """
        for path_item in paths.values():
            self.collect_references(path_item)

    def seed_security(self, requirements: Any) -> None:
        """Scan a root-level security requirement list."""
        if requirements:
            self._follow_security(requirements)

    def seed_error_schemas(self, names: Iterable[str] = FORCED_ERROR_SCHEMAS) -> None:
        """Force in the conventional error schemas that exist in the source."""
        for name in names:
            if self.get_component('schemas', name) is not None:
                self.track('schemas', name)

    def seed_names(self, names: Iterable[str]) -> None:
        """
        Seed every category with caller-supplied names.

        Names absent from a category's source map stay in the reachable set
        but never match a component there.
        """
        for name in names:
            for category in COMPONENT_TYPES:
                self.track(category, name)

    def close(self) -> ReachableSet:
        """
        Scan queued components until no new name becomes reachable.

        Returns:
            The reachable set per category
        """
        passes = 0
        while self._pending:
            passes += 1
            batch: List[Tuple[str, str]] = list(self._pending)
            self._pending.clear()
            for category, name in batch:
                definition = self.get_component(category, name)
                if definition is None:
                    continue
                if self.exclude_internal and is_internal(definition):
                    # Excluded from the output; body not followed
                    logger.debug(f"Not scanning internal component {category}/{name}")
                    continue
                self.collect_references(definition)
            logger.debug(f"Closure pass {passes}: scanned {len(batch)} components")
        return self.reachable

    def resolve(
        self,
        paths: Dict[str, Any],
        security: Any = None,
        always_include: Iterable[str] = (),
    ) -> ReachableSet:
        """
        Compute the reachable set for a filtered document.

        Args:
            paths: Filtered ``paths`` mapping
            security: Root-level security requirement list
            always_include: Names forced into every category

        Returns:
            The reachable set per category
        """
        self.seed_names(always_include)
        self.seed_operations(paths)
        self.seed_security(security)
        self.seed_error_schemas()
        reachable = self.close()

        summary = ', '.join(
            f"{category}={len(reachable[category])}"
            for category in COMPONENT_TYPES if reachable[category]
        )
        logger.debug(f"Reachable components: {summary or 'none'}")
        return reachable
