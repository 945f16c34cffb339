"""
Command-line interface for OpenAPI Filter.
"""

import argparse
import sys
import os
import logging
from .core import OpenAPIFilter, OpenAPIFilterError, FilterOptions


def setup_logging(verbose: bool = False) -> None:
    """
    Configure logging for the CLI.

    Args:
        verbose: Enable verbose logging
    """
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(message)s' if not verbose else '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr,
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        description='Filter an OpenAPI file down to selected operations and the components they use',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s openapi.json -o mini.json -t User -t Project
  %(prog)s openapi.yaml -p '^/v2/' -o v2.yaml
  %(prog)s openapi.json -c filter.yaml --exclude-internal
  %(prog)s openapi.json -t User -a Error -a PageRequest > mini.json
        """
    )

    parser.add_argument(
        'input_file',
        help='Path to the input OpenAPI YAML or JSON file'
    )

    parser.add_argument(
        '-o', '--output',
        help='Output file (default: print to stdout)'
    )

    parser.add_argument(
        '-f', '--format',
        choices=['yaml', 'json'],
        help='Output format (default: from output suffix, else json)'
    )

    parser.add_argument(
        '-c', '--config',
        help='YAML or JSON file with filter options'
    )

    parser.add_argument(
        '-t', '--tag',
        dest='tags',
        action='append',
        default=[],
        help='Keep operations with this tag (repeatable; default: all operations)'
    )

    parser.add_argument(
        '-p', '--path-pattern',
        help='Regular expression a path must match to be kept'
    )

    parser.add_argument(
        '-a', '--always-include',
        dest='always_include',
        action='append',
        default=[],
        help='Component name to keep regardless of references (repeatable)'
    )

    parser.add_argument(
        '--exclude-internal',
        action='store_true',
        help='Drop components and tags marked with x-internal'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    parser.add_argument(
        '--version',
        action='version',
        version='%(prog)s 1.0.0'
    )

    return parser


def build_options(args: argparse.Namespace) -> FilterOptions:
    """
    Merge the config file, if any, with command-line flags.

    Args:
        args: Parsed arguments

    Returns:
        FilterOptions for the run
    """
    base = FilterOptions.from_file(args.config) if args.config else FilterOptions()
    return FilterOptions(
        tags=base.tags + args.tags,
        path_pattern=args.path_pattern if args.path_pattern is not None else base.path_pattern,
        exclude_internal_components=args.exclude_internal or base.exclude_internal_components,
        always_include_components=base.always_include_components + args.always_include,
    )


def main(argv=None):
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    # Set up logging
    setup_logging(args.verbose)
    logger = logging.getLogger(__name__)

    # Validate input file exists
    if not os.path.exists(args.input_file):
        print(f"Error: Input file '{args.input_file}' not found", file=sys.stderr)
        sys.exit(1)

    try:
        options = build_options(args)
        spec_filter = OpenAPIFilter(args.input_file, args.output, args.format)

        logger.info(f"Filtering {args.input_file} with {options.to_dict()}")
        if args.output:
            filepath = spec_filter.run(options)
            logger.info(f"Filter complete. Output written to: {filepath}")
        else:
            sys.stdout.write(spec_filter.dump_spec(spec_filter.filter(options)))

    except OpenAPIFilterError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        sys.exit(1)


if __name__ == '__main__':
    main()
