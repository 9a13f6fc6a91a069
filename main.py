#!/usr/bin/env python3
"""
yiff-dl - Hauptprogramm
Archiviert Posts, Anhänge und Shared Files eines Creators von yiff.party
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from archiver import CreatorArchiver, logger
from config import Config, HttpSettings
from models import RunSummary
from resolver import CreatorNotFoundError, InvalidCreatorIdentifierError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='yiff-dl',
        description='Archiviert die Inhalte eines Creators von yiff.party',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Beispiele:
  yiff-dl 3519586
  yiff-dl https://yiff.party/patreon/3519586
  yiff-dl "Foo Bar" --creator-folder
  yiff-dl 3519586 -o ~/archiv --concurrency 4
        """
    )

    parser.add_argument(
        'creator',
        nargs='?',
        help='Creator-ID, yiff.party-URL oder Creator-Name'
    )

    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=Config.OUTPUT_DIR,
        help=f'Ausgabeverzeichnis (Standard: {Config.OUTPUT_DIR})'
    )

    parser.add_argument(
        '--user-agent',
        default=Config.USER_AGENT,
        help='Eigener User-Agent für alle Requests'
    )

    parser.add_argument(
        '--creator-folder',
        action='store_true',
        help='Ausgabe in einem Unterordner mit dem Creator-Namen ablegen'
    )

    parser.add_argument(
        '--concurrency',
        type=int,
        default=Config.DOWNLOAD_CONCURRENCY,
        help=f'Parallele Downloads (Standard: {Config.DOWNLOAD_CONCURRENCY})'
    )

    parser.add_argument(
        '--no-progress',
        action='store_true',
        help='Keine Fortschrittsbalken anzeigen'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Debug-Modus aktivieren (mehr Logs)'
    )

    return parser


def print_summary(summary: RunSummary) -> None:
    print("\n" + "="*60)
    print("YIFF-DL ZUSAMMENFASSUNG")
    print("="*60)
    if summary.creator:
        print(f"Creator:                {summary.creator.name} ({summary.creator.id})")
    print(f"Posts archiviert:       {summary.posts_archived:,} / {summary.posts_total:,}")
    print(f"Posts ohne HTML:        {len(summary.posts_without_fragment):,}")
    print(f"Posts übersprungen:     {len(summary.posts_skipped):,}")
    print(f"Seiten gecrawlt:        {summary.pages_total - len(summary.failed_pages):,} / {summary.pages_total:,}")
    print(f"Shared Files:           {summary.shared_files_total:,}")
    print(f"Dateien gespeichert:    {summary.saved:,}")
    print(f"Dateien übersprungen:   {summary.skipped:,}")
    print(f"Dateien fehlgeschlagen: {summary.failed:,}")

    if not summary.crawl_complete:
        print(f"\nUnvollständiger Crawl, fehlende Seiten: {summary.failed_pages}")

    if summary.failures:
        print("\nFehlgeschlagene Downloads:")
        for outcome in summary.failures:
            print(f"   {outcome.url} -> {outcome.path}")
    print("="*60)


async def main(argv=None) -> int:
    """Hauptfunktion für das Archivieren eines Creators"""

    args = build_parser().parse_args(argv)

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.info("Debug-Modus aktiviert")

    if not args.creator:
        logger.error("Bitte eine Creator-ID angeben!")
        return 1

    settings = HttpSettings(user_agent=args.user_agent)

    logger.info("="*60)
    logger.info("YIFF-DL GESTARTET")
    logger.info("="*60)
    logger.info(f"Base URL: {settings.base_url}")
    logger.info(f"Ausgabe: {Path(args.output).absolute()}")
    logger.info(f"Parallele Downloads: {args.concurrency}")
    logger.info("="*60)

    try:
        async with CreatorArchiver(
            output_base=args.output,
            settings=settings,
            creator_folder=args.creator_folder,
            concurrency=args.concurrency,
            show_progress=not args.no_progress,
        ) as archiver:
            summary = await archiver.archive(args.creator)

    except InvalidCreatorIdentifierError as e:
        logger.error(str(e))
        return 1

    except CreatorNotFoundError as e:
        logger.error(str(e))
        return 1

    except KeyboardInterrupt:
        logger.warning("\nArchivierung durch Benutzer abgebrochen (Ctrl+C)")
        return 130

    except Exception as e:
        logger.error(f"\nKritischer Fehler: {e}")
        import traceback
        logger.error(traceback.format_exc())
        return 1

    print_summary(summary)
    return 0


def run():
    """Entry Point für das Programm"""
    try:
        exit_code = asyncio.run(main())
        sys.exit(exit_code)
    except KeyboardInterrupt:
        print("\nProgramm abgebrochen")
        sys.exit(130)


if __name__ == '__main__':
    run()
