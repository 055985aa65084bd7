"""
Command Line Interface for Notetaker

Provides CLI access to:
- Single PDF processing
- Concurrent batch processing
- Per-page extraction for debugging
- Configuration management
"""

import argparse
import asyncio
import json
import sys
import logging
from pathlib import Path
from typing import List, Optional
import time

from .config import ConfigManager, NotetakerConfig
from .exporter import save_markdown, to_markdown, to_plain_text, export_filename, count_visual_elements
from .pdf_extractor import ExtractionError, PDFExtractor, extract_pdf_content
from .session import ProcessingSession, ProcessingRecord, ProcessingStatus, Upload, ValidationError

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False, log_file: Optional[str] = None, level: str = "INFO"):
    """Set up logging configuration."""
    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file, encoding='utf-8'))

    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )


def print_progress(record: ProcessingRecord):
    if record.status is ProcessingStatus.PROCESSING and record.processing_stage:
        print(f"[{record.progress:.0f}%] {record.name}: {record.processing_stage}")


def write_output(record: ProcessingRecord, output_dir: str, output_format: str) -> Path:
    """Write a completed record's notes in the requested format."""
    if output_format == 'markdown':
        return save_markdown(record.notes, record.name, output_dir)

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)
    stem = export_filename(record.name, enhanced=False)[:-len(".md")]

    if output_format == 'json':
        target = output_path / f"{stem}.json"
        with open(target, 'w', encoding='utf-8') as f:
            json.dump(record.notes.to_dict(), f, indent=2, ensure_ascii=False)
    else:
        target = output_path / f"{stem}.txt"
        target.write_text(to_plain_text(record.notes), encoding='utf-8')

    return target


def process_single_pdf(args, config: NotetakerConfig):
    """Process a single PDF into notes."""
    pdf_path = Path(args.pdf_path)
    if not pdf_path.is_file():
        print(f"PDF file not found: {pdf_path}")
        return 1

    print(f"Processing: {pdf_path}")

    session = ProcessingSession(config=config, on_update=print_progress)
    try:
        upload = Upload.from_path(pdf_path)
        record = asyncio.run(session.process_file(upload.data, upload.name, upload.content_type))
    except ValidationError as e:
        print(f"Upload rejected: {e}")
        return 1
    finally:
        session.shutdown()

    print("\n" + "=" * 60)
    print("PROCESSING RESULTS")
    print("=" * 60)
    print(f"Status: {record.status.value}")

    if record.status is not ProcessingStatus.COMPLETED:
        print(f"Error: {record.error}")
        return 1

    notes = record.notes
    visuals = count_visual_elements(notes)
    print(f"Title: {notes.title}")
    print(f"Pages: {len(notes.sections)}")
    print(f"Words: {notes.word_count}")
    print(f"Key points: {len(notes.key_points)}")
    print(f"Tags: {', '.join(notes.tags) or '-'}")
    print(f"Visual blocks: {visuals['figures']} figures, {visuals['tables']} tables, "
          f"{visuals['graphs']} graphs")

    target = write_output(record, args.output_dir or config.paths.output_dir, args.format)
    print(f"\nNotes saved to: {target}")

    if args.show_notes:
        print("\n" + to_markdown(notes))

    return 0


def find_pdf_files(input_path: Path) -> List[Path]:
    if input_path.is_file():
        return [input_path] if input_path.suffix.lower() == '.pdf' else []
    return sorted(input_path.glob("**/*.pdf"))


def process_batch(args, config: NotetakerConfig):
    """Process every PDF below a directory concurrently."""
    input_path = Path(args.input_path)
    if not input_path.exists():
        print(f"Invalid input path: {input_path}")
        return 1

    pdf_files = find_pdf_files(input_path)
    if not pdf_files:
        print("No PDF files found")
        return 1

    print(f"Found {len(pdf_files)} PDF files")

    session = ProcessingSession(config=config, on_update=print_progress if args.verbose else None)
    start_time = time.time()
    try:
        uploads = [Upload.from_path(path) for path in pdf_files]
        records = asyncio.run(session.process_many(uploads))
    except ValidationError as e:
        print(f"Upload rejected: {e}")
        return 1
    finally:
        session.shutdown()
    total_time = time.time() - start_time

    output_dir = args.output_dir or config.paths.output_dir
    completed = [r for r in records if r.status is ProcessingStatus.COMPLETED]
    for record in completed:
        write_output(record, output_dir, args.format)

    print("\n" + "=" * 60)
    print("BATCH PROCESSING RESULTS")
    print("=" * 60)
    print(f"Total files: {len(records)}")
    print(f"Successful: {len(completed)}")
    print(f"Failed: {len(records) - len(completed)}")
    print(f"Total time: {total_time:.2f}s")
    print(f"Output directory: {output_dir}")

    failed = [r for r in records if r.status is ProcessingStatus.FAILED]
    if failed:
        print("\nFailed files:")
        for record in failed:
            print(f"  {record.name}: {record.error}")

    return 0 if completed else 1


def extract_text(args, config: NotetakerConfig):
    """Extract per-page text and references (testing/debugging)."""
    print(f"Extracting text from: {args.pdf_path}")

    try:
        extractor = PDFExtractor(
            line_break_threshold=config.extraction.line_break_threshold,
            word_gap_threshold=config.extraction.word_gap_threshold
        )
        document = extract_pdf_content(args.pdf_path, extractor)
    except (ExtractionError, FileNotFoundError) as e:
        print(f"Error: {e}")
        return 1

    print("\nExtraction Results:")
    print(f"  Title: {document.title}")
    print(f"  Total pages: {document.total_pages}")
    print(f"  Figures referenced: {document.total_figures}")
    print(f"  Tables referenced: {document.total_tables}")
    print(f"  Graphs referenced: {document.total_graphs}")

    for page in document.pages:
        references = len(page.figures) + len(page.tables) + len(page.graphs)
        print(f"\n  Page {page.page_number}: {page.title or '(untitled)'} "
              f"({len(page.text)} chars, {references} references"
              f"{', images' if page.has_images else ''})")
        if args.show_text and page.text:
            print("-" * 40)
            print(page.text)

    return 0


def manage_config(args, config_path: Optional[str]):
    """Create templates or validate the configuration."""
    manager = ConfigManager(config_path)

    if args.action == 'sample':
        manager.create_sample_config(args.output)
        print(f"Sample configuration written to: {args.output or 'notetaker.sample.json'}")
    elif args.action == 'env':
        manager.create_env_template(args.output)
        print(f"Environment template written to: {args.output or '.env.template'}")
    else:
        try:
            config = manager.load_config()
        except (ValueError, TypeError) as e:
            print(f"Invalid configuration: {e}")
            return 1
        print("Configuration is valid")
        print(json.dumps({
            'output_dir': config.paths.output_dir,
            'log_level': config.paths.log_level,
            'max_file_size_mb': config.session.max_file_size_mb,
            'max_workers': config.session.max_workers
        }, indent=2))

    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Notetaker: turn PDFs into structured notes",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Process a single PDF
  notetaker process report.pdf --show-notes

  # Batch process a directory as JSON
  notetaker batch papers/ --format json

  # Inspect extraction page by page
  notetaker extract report.pdf --show-text

  # Write a sample configuration
  notetaker config sample
        """
    )

    # Global arguments
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose output')
    parser.add_argument('--config', help='Path to JSON configuration file')
    parser.add_argument('--output-dir', help='Output directory (overrides configuration)')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    process_parser = subparsers.add_parser('process', help='Process a single PDF')
    process_parser.add_argument('pdf_path', help='Path to PDF file')
    process_parser.add_argument('--format', choices=['markdown', 'text', 'json'],
                                default='markdown', help='Output format')
    process_parser.add_argument('--show-notes', action='store_true', help='Print the markdown notes')

    batch_parser = subparsers.add_parser('batch', help='Process multiple PDFs concurrently')
    batch_parser.add_argument('input_path', help='Directory containing PDF files or single PDF')
    batch_parser.add_argument('--format', choices=['markdown', 'text', 'json'],
                              default='markdown', help='Output format')

    extract_parser = subparsers.add_parser('extract', help='Extract text from PDF (debugging)')
    extract_parser.add_argument('pdf_path', help='Path to PDF file')
    extract_parser.add_argument('--show-text', action='store_true', help='Print reassembled page text')

    config_parser = subparsers.add_parser('config', help='Configuration management')
    config_parser.add_argument('action', choices=['sample', 'env', 'validate'], help='Config action')
    config_parser.add_argument('--output', help='Output path for generated templates')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == 'config':
        setup_logging(args.verbose)
        return manage_config(args, args.config)

    try:
        config = ConfigManager(args.config).load_config()
    except (ValueError, TypeError) as e:
        print(f"Invalid configuration: {e}")
        return 1

    setup_logging(args.verbose or config.debug, config.paths.log_file, config.paths.log_level)

    try:
        if args.command == 'process':
            return process_single_pdf(args, config)
        elif args.command == 'batch':
            return process_batch(args, config)
        elif args.command == 'extract':
            return extract_text(args, config)
        else:
            print(f"Unknown command: {args.command}")
            return 1

    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        return 1
    except Exception as e:
        logger.error(f"Unexpected error: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return 1


if __name__ == '__main__':
    sys.exit(main())
