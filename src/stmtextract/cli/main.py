#!/usr/bin/env python3
"""
stmtextract CLI - Extract transactions from bank statements.

Usage:
    stmtextract extract statements/ --output transactions.csv
    stmtextract extract dividend.pdf --format xlsx --output out.xlsx
    stmtextract list
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from stmtextract.core.config import ExtractorConfig, SUPPORTED_FORMATS
from stmtextract.parsers.base import ExtractorRegistry
from stmtextract.parsers.loader import DocumentLoader
from stmtextract.parsers.service import ExtractionService
from stmtextract.reports.export import export_results

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, debug: bool = False, default_level: str = "WARNING"):
    """Configure logging."""
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = getattr(logging, default_level.upper(), logging.WARNING)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )


# ============================================================================
# Command Handlers
# ============================================================================

def cmd_extract(args, config: ExtractorConfig) -> int:
    """Handle extract command - load, extract and export documents."""
    loader = DocumentLoader.from_config(config)
    documents, failures = loader.load_all(Path(p) for p in args.paths)

    for path, reason in failures.items():
        print(f"  Skipped {path}: {reason}")

    if not documents:
        print("No documents to extract")
        return 1

    service = ExtractionService.from_config(config)
    results = service.extract_all(documents, max_workers=args.workers)

    print("\nExtraction Results:")
    for result in results:
        transactions, skipped, rejected = result.counts()
        print(f"  {result.document_name}: {transactions} transaction(s), "
              f"{skipped} not importable, {rejected} rejected")
        for rejection in result.rejections:
            print(f"    - {rejection}")
        for error in result.errors:
            print(f"    ! {error}")

    if args.output:
        fmt = args.format or config.output.format
        path = export_results(
            results,
            Path(args.output),
            fmt=fmt,
            include_rejections=config.output.include_rejections,
        )
        print(f"\nWritten: {path}")

    failed = bool(failures) or any(not result.success for result in results)
    return 1 if failed else 0


def cmd_list(args, config: ExtractorConfig) -> int:
    """Handle list command - show registered extractors."""
    import stmtextract.parsers.banks  # noqa: F401

    print("\nRegistered extractors:")
    for name in ExtractorRegistry.list_extractors():
        extractor = ExtractorRegistry.get_extractor(name)
        state = "enabled" if config.extraction.is_enabled(name) else "disabled"
        print(f"  {name:<14} {extractor.get_label():<14} "
              f"{len(extractor.document_types)} document types ({state})")
    return 0


# ============================================================================
# Main
# ============================================================================

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog='stmtextract',
        description='stmtextract - Transactions from bank statement documents',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  stmtextract extract statements/ --output transactions.csv
  stmtextract extract kauf.pdf dividende.pdf --format xlsx --output out.xlsx
  stmtextract --config extractor.json extract statements/ --workers 4
  stmtextract list
        """
    )

    # Global arguments
    parser.add_argument('--config', '-c', help='Configuration file (JSON)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--debug', action='store_true', help='Debug output')

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Command')

    # extract command
    extract_parser = subparsers.add_parser('extract', help='Extract transactions from documents')
    extract_parser.add_argument('paths', nargs='+', help='Text/PDF files or directories')
    extract_parser.add_argument('--output', '-o', help='Output file')
    extract_parser.add_argument('--format', '-f', choices=sorted(SUPPORTED_FORMATS),
                                help='Output format (default: from configuration)')
    extract_parser.add_argument('--workers', '-w', type=int,
                                help='Documents processed in parallel')

    # list command
    subparsers.add_parser('list', help='List registered extractors')

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    config = ExtractorConfig.load(Path(args.config)) if args.config else ExtractorConfig()
    setup_logging(args.verbose, args.debug, config.log_level)

    try:
        if args.command == 'extract':
            return cmd_extract(args, config)
        elif args.command == 'list':
            return cmd_list(args, config)
        else:
            parser.print_help()
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled")
        return 130
    except Exception as e:
        print(f"\nError: {e}")
        if args.debug:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == "__main__":
    sys.exit(main())
