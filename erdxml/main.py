"""
CLI entry point

Converts ER diagram documents between the standard and legacy XML dialects
"""
import sys
import argparse
import logging
from pathlib import Path

from erdxml.config import ConversionConfig
from erdxml.diagram_utils import merge_diagrams
from erdxml.errors import InterchangeError
from erdxml.io.dispatcher import DiagramFormat, parse, serialize
from erdxml.logger import ConversionLogger
from erdxml.validation import validate_diagram


def _read(path: Path, logger: ConversionLogger, config: ConversionConfig):
    print(f"Parsing: {path}")
    return parse(path.read_text(encoding="utf-8"), logger=logger, config=config)


def main(argv=None):
    """Main function"""
    parser = argparse.ArgumentParser(
        description='Convert ER diagram XML between the standard and legacy dialects',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  erdxml model.xml model_standard.xml
  erdxml model.xml model_legacy.xml --to legacy
  erdxml base.xml merged.xml --merge other.xml
  erdxml model.xml out.xml --validate
        """
    )
    parser.add_argument('input', type=str, help='Path to input diagram (either dialect)')
    parser.add_argument('output', type=str, help='Path to output file')
    parser.add_argument(
        '--to',
        dest='target',
        choices=[f.value for f in DiagramFormat],
        default=DiagramFormat.STANDARD.value,
        help='Output dialect (default: standard)',
    )
    parser.add_argument(
        '--merge',
        dest='merge_path',
        type=str,
        default=None,
        help='Diagram to append below the input diagram (ids are remapped)',
    )
    parser.add_argument('--validate', action='store_true',
                       help='Print ER modelling issues found in the result')
    parser.add_argument('--strict', action='store_true',
                       help='Fail on references to ids the document does not define')
    parser.add_argument('-v', '--verbose', action='store_true',
                       help='Enable debug logging')

    args = parser.parse_args(argv)

    input_path = Path(args.input)
    output_path = Path(args.output)

    if not input_path.exists():
        print(f"Input file not found: {input_path}")
        sys.exit(1)

    merge_path = Path(args.merge_path) if args.merge_path else None
    if merge_path is not None and not merge_path.exists():
        print(f"Merge file not found: {merge_path}")
        sys.exit(1)

    config = ConversionConfig(strict_references=args.strict)
    logger = ConversionLogger()
    if args.verbose:
        logger.logger.setLevel(logging.DEBUG)

    try:
        diagram = _read(input_path, logger, config)
        if merge_path is not None:
            diagram = merge_diagrams(diagram, _read(merge_path, logger, config))

        text = serialize(diagram, DiagramFormat(args.target), logger=logger, config=config)
        output_path.write_text(text, encoding="utf-8")
        print(
            f"Saved {output_path} ({args.target}: {len(diagram.entities)} entities, "
            f"{len(diagram.relationships)} relationships)"
        )
    except InterchangeError as e:
        print(f"Error: {e}")
        sys.exit(1)

    # Display warnings
    warnings = logger.get_warnings()
    if warnings:
        print(f"\nWarnings ({len(warnings)}):")
        for warning in warnings:
            print(f"  - {warning.message}")

    if args.validate:
        issues = validate_diagram(diagram)
        if issues:
            print(f"\nValidation issues ({len(issues)}):")
            for issue in issues:
                print(f"  - [{issue.element_id}] {issue.message}")
        else:
            print("\nNo validation issues")


if __name__ == "__main__":
    main()
