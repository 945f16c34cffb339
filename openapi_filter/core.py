"""
Core logic for OpenAPI Filter.
This module provides the main SDK functionality for filtering OpenAPI specifications
down to a tag/path subset and the components that subset depends on.
"""

import copy
import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml

from .assembler import assemble_spec
from .resolver import ComponentResolver
from .selector import select_paths

# Configure logger
logger = logging.getLogger(__name__)


class OpenAPIFilterError(Exception):
    """Custom exception for OpenAPI Filter errors."""
    pass


_OPTION_KEYS = {
    'tags': 'tags',
    'pathPattern': 'path_pattern',
    'path_pattern': 'path_pattern',
    'excludeInternalComponents': 'exclude_internal_components',
    'exclude_internal_components': 'exclude_internal_components',
    'alwaysIncludeComponents': 'always_include_components',
    'always_include_components': 'always_include_components',
}


def _as_name_list(value: Any, option: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, (list, tuple, set, frozenset)):
        names = list(value)
        for name in names:
            if not isinstance(name, str):
                raise OpenAPIFilterError(f"Option '{option}' must contain strings, got {name!r}")
        return names
    raise OpenAPIFilterError(f"Option '{option}' must be a list of strings")


class FilterOptions:
    """
    Options controlling which parts of a specification are kept.

    Attributes:
        tags: Tag names, OR-matched against each operation; empty keeps all
        path_pattern: Regular expression searched in each path string
        exclude_internal_components: Drop components and tags marked ``x-internal``
        always_include_components: Names seeded into every component category
    """

    def __init__(
        self,
        tags: Optional[List[str]] = None,
        path_pattern: Optional[str] = None,
        exclude_internal_components: bool = False,
        always_include_components: Optional[List[str]] = None,
    ):
        self.tags = _as_name_list(tags, 'tags')
        self.path_pattern = path_pattern
        if not isinstance(exclude_internal_components, bool):
            raise OpenAPIFilterError(
                f"Option 'excludeInternalComponents' must be true or false, "
                f"got {exclude_internal_components!r}"
            )
        self.exclude_internal_components = exclude_internal_components
        self.always_include_components = _as_name_list(
            always_include_components, 'alwaysIncludeComponents'
        )
        self.path_regex = self._compile_pattern(path_pattern)

    @staticmethod
    def _compile_pattern(pattern: Optional[str]):
        if pattern is None or pattern == '':
            return None
        if not isinstance(pattern, str):
            raise OpenAPIFilterError(f"Option 'pathPattern' must be a string, got {pattern!r}")
        try:
            return re.compile(pattern)
        except re.error as e:
            raise OpenAPIFilterError(f"Invalid path pattern {pattern!r}: {e}") from e

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'FilterOptions':
        """
        Build options from a mapping using camelCase or snake_case keys.

        Args:
            data: Option mapping

        Returns:
            FilterOptions instance

        Raises:
            OpenAPIFilterError: If the mapping contains unknown keys
        """
        if not isinstance(data, Mapping):
            raise OpenAPIFilterError("Filter options must be a mapping")

        kwargs = {}
        for key, value in data.items():
            if key not in _OPTION_KEYS:
                raise OpenAPIFilterError(f"Unknown filter option: {key}")
            kwargs[_OPTION_KEYS[key]] = value
        return cls(**kwargs)

    @classmethod
    def from_file(cls, config_file: Union[str, Path]) -> 'FilterOptions':
        """
        Load options from a YAML or JSON file.

        Args:
            config_file: Path to the options file

        Returns:
            FilterOptions instance

        Raises:
            OpenAPIFilterError: If the file is missing or malformed
        """
        config_path = Path(config_file)
        if not config_path.exists():
            raise OpenAPIFilterError(f"Config file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise OpenAPIFilterError(f"Error loading config {config_path}: {e}") from e

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise OpenAPIFilterError(f"Config file {config_path} must contain a mapping")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        """Return the options with their camelCase names."""
        return {
            'tags': list(self.tags),
            'pathPattern': self.path_pattern,
            'excludeInternalComponents': self.exclude_internal_components,
            'alwaysIncludeComponents': list(self.always_include_components),
        }

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, FilterOptions):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return f"FilterOptions({self.to_dict()!r})"


def filter_spec(spec: Dict[str, Any], options: Optional[FilterOptions] = None) -> Dict[str, Any]:
    """
    Filter a parsed OpenAPI document.

    The source document is left untouched; the result is built from a deep
    copy of it.

    Args:
        spec: Parsed OpenAPI document
        options: Filter options; defaults keep every operation

    Returns:
        Filtered OpenAPI document
    """
    if options is None:
        options = FilterOptions()
    if not isinstance(spec, dict):
        raise OpenAPIFilterError("OpenAPI document must be a mapping")

    try:
        working = copy.deepcopy(spec)
    except RecursionError as e:
        raise OpenAPIFilterError("OpenAPI document is nested too deeply to copy") from e

    selection = select_paths(working.get('paths'), options.tags, options.path_regex)

    resolver = ComponentResolver(spec, exclude_internal=options.exclude_internal_components)
    reachable = resolver.resolve(
        selection.paths,
        security=working.get('security'),
        always_include=options.always_include_components,
    )

    result = assemble_spec(
        spec,
        working,
        selection.paths,
        reachable,
        selection.used_tags,
        exclude_internal=options.exclude_internal_components,
    )

    kept = sum(len(section) for section in result.get('components', {}).values())
    logger.info(
        f"Kept {len(result['paths'])} paths, {kept} components, "
        f"{len(result.get('tags', []))} tags"
    )
    return result


class OpenAPIFilter:
    """
    Filter an OpenAPI specification file.

    Wraps :func:`filter_spec` with loading the source file and writing the
    filtered document.
    """

    def __init__(
        self,
        input_file: Union[str, Path],
        output_file: Optional[Union[str, Path]] = None,
        output_format: Optional[str] = None,
    ):
        """
        Initialize the OpenAPIFilter.

        Args:
            input_file: Path to the OpenAPI specification file
            output_file: Path for the filtered file
            output_format: Output format ('yaml' or 'json'); inferred from the
                output suffix when omitted

        Raises:
            OpenAPIFilterError: If input file doesn't exist or format is invalid
        """
        self.input_file = Path(input_file)
        self.output_file = Path(output_file) if output_file else None
        self.output_format = (output_format or self._infer_format()).lower()
        self.spec = None

        if not self.input_file.exists():
            raise OpenAPIFilterError(f"Input file not found: {self.input_file}")

        if self.output_format not in ['yaml', 'json']:
            raise OpenAPIFilterError(f"Invalid output format: {self.output_format}")

    def _infer_format(self) -> str:
        if self.output_file and self.output_file.suffix.lower() in ['.yaml', '.yml']:
            return 'yaml'
        return 'json'

    def load_spec(self) -> Dict[str, Any]:
        """
        Load the OpenAPI specification from file.

        Returns:
            Loaded OpenAPI specification

        Raises:
            OpenAPIFilterError: If loading fails
        """
        try:
            with open(self.input_file, 'r', encoding='utf-8') as f:
                if self.input_file.suffix.lower() in ['.yaml', '.yml']:
                    self.spec = yaml.safe_load(f)
                elif self.input_file.suffix.lower() == '.json':
                    self.spec = json.load(f)
                else:
                    # Try YAML first, then JSON
                    content = f.read()
                    try:
                        self.spec = yaml.safe_load(content)
                    except yaml.YAMLError:
                        try:
                            self.spec = json.loads(content)
                        except json.JSONDecodeError:
                            raise OpenAPIFilterError("Unable to parse file as YAML or JSON")

            if self.spec is None:
                self.spec = {}
            if not isinstance(self.spec, dict):
                raise OpenAPIFilterError(f"{self.input_file} does not contain an OpenAPI document")

            logger.info(f"Loaded OpenAPI spec from {self.input_file}")
            return self.spec

        except Exception as e:
            if isinstance(e, OpenAPIFilterError):
                raise
            raise OpenAPIFilterError(f"Error loading spec: {e}") from e

    def dump_spec(self, spec: Dict[str, Any]) -> str:
        """
        Serialize a specification in the configured output format.

        Args:
            spec: Specification to serialize

        Returns:
            Serialized document
        """
        if self.output_format == "json":
            return json.dumps(spec, indent=2, ensure_ascii=False) + '\n'
        return yaml.dump(spec, default_flow_style=False, sort_keys=False,
                         allow_unicode=True, indent=2, width=1000)

    def write_spec(self, spec: Dict[str, Any], output_file: Union[str, Path, None] = None) -> Path:
        """
        Write specification to file.

        Args:
            spec: Specification to write
            output_file: Output path; defaults to the configured output file

        Returns:
            Path to written file
        """
        filepath = Path(output_file) if output_file else self.output_file
        if filepath is None:
            raise OpenAPIFilterError("No output file configured")

        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            with open(filepath, 'w', encoding='utf-8') as f:
                f.write(self.dump_spec(spec))

            logger.info(f"Created: {filepath}")
            return filepath

        except Exception as e:
            raise OpenAPIFilterError(f"Error writing {filepath}: {e}") from e

    def filter(self, options: Optional[FilterOptions] = None) -> Dict[str, Any]:
        """
        Load the source file and filter it.

        Args:
            options: Filter options

        Returns:
            Filtered OpenAPI document
        """
        if self.spec is None:
            self.load_spec()
        return filter_spec(self.spec, options)

    def run(self, options: Optional[FilterOptions] = None) -> Path:
        """
        Main entry point: load, filter and write the result.

        Args:
            options: Filter options

        Returns:
            Path to the written file
        """
        filtered = self.filter(options)
        return self.write_spec(filtered)
