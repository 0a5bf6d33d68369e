#!/usr/bin/env python3
"""
Harvest chart bundles from Google Drive folders into a local library.

Roots come from the command line (Drive links or ids) and/or the settings
file; the access token from --token, the settings file, or
HARVESTER_ACCESS_TOKEN (in that order).

Examples:
  python3 scripts/harvest.py https://drive.google.com/drive/folders/<id> --download-root ~/Songs
  python3 scripts/harvest.py --config data/config.json --yes

Exit codes: 0 ok, 1 some bundles failed, 2 configuration error, 130 cancelled.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path
from typing import Optional

from src.harvester.crawler.models import RootRef, ScanCancelled
from src.harvester.pipeline.harvest_runner import build_client, run_harvest
from src.harvester.progress import FileProgress
from src.harvester.prompts import ConsolePrompter, FixedPrompter, Prompter
from src.harvester.settings.models import Credentials, HarvestSettings
from src.harvester.settings.store import SettingsStore
from src.shared.validators.drive_link import parse_drive_link

logger = logging.getLogger("harvest")


def parse_roots(values: list[str]) -> list[RootRef]:
    """
    Raises:
        ValueError: On the first value that is not a Drive link or id.
    """
    refs: list[RootRef] = []
    for value in values:
        result = parse_drive_link(value)
        if not result:
            raise ValueError(f"{value}: {result.error}")
        refs.append(RootRef(drive_id=result.drive_id))
    return refs


def apply_overrides(settings: HarvestSettings, args: argparse.Namespace, cli_roots: list[RootRef]) -> HarvestSettings:
    if args.token:
        settings.credentials = Credentials(access_token=args.token.strip())
    if args.download_root:
        settings.download_root = str(Path(args.download_root).expanduser())
    if args.max_size_mb is not None:
        settings.max_download_size_mb = args.max_size_mb
    if args.extractor:
        settings.extractor_path = args.extractor
    if args.strict_timestamps:
        settings.strict_timestamps = True

    known = {r.drive_id for r in settings.roots}
    for ref in cli_roots:
        if ref.drive_id not in known:
            settings.roots.append(ref)
            known.add(ref.drive_id)
    return settings


def build_prompter(args: argparse.Namespace) -> Prompter:
    if args.yes:
        return FixedPrompter(True)
    if args.no_input:
        return FixedPrompter(False)
    return ConsolePrompter()


async def run(args: argparse.Namespace) -> int:
    store = SettingsStore(path=Path(args.config))

    try:
        cli_roots = parse_roots(args.roots)
    except ValueError as exc:
        logger.error("Invalid root: %s", exc)
        return 2

    if args.save_roots and cli_roots:
        store.add_roots(cli_roots)
        logger.info("Saved %d root(s) to [%s].", len(cli_roots), store.path)

    settings = apply_overrides(store.load(), args, cli_roots)
    if not settings.roots:
        logger.error("No roots given on the command line or in [%s].", store.path)
        return 2

    try:
        client = build_client(settings)
    except (RuntimeError, ValueError) as exc:
        logger.error("%s", exc)
        return 2

    progress = None if args.quiet else FileProgress()
    try:
        summary = await run_harvest(
            settings,
            prompter=build_prompter(args),
            client=client,
            on_progress=progress,
        )
    except ScanCancelled as exc:
        logger.warning("%s", exc)
        return 130
    finally:
        if progress is not None:
            progress.close()

    return 1 if summary.materialize.failed else 0


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="harvest",
        description="Find chart bundles in Google Drive folders and download them into a local library.",
    )
    p.add_argument("roots", nargs="*", help="Drive folder/file links or ids (added to the configured roots)")
    p.add_argument("--config", default="data/config.json", help="Settings file path (default data/config.json)")
    p.add_argument("--save-roots", action="store_true", help="Persist the given roots in the settings file")
    p.add_argument("--token", default="", help="OAuth access token (overrides config/env)")
    p.add_argument("--download-root", default="", help="Local library folder (overrides config)")
    p.add_argument("--max-size-mb", type=int, default=None, help="Skip files larger than this; negative for no limit")
    p.add_argument("--extractor", default="", help="7-Zip compatible executable (default 7z)")
    p.add_argument("--strict-timestamps", action="store_true", help="Fail a bundle if file times can't be restored")

    answers = p.add_mutually_exclusive_group()
    answers.add_argument("--yes", action="store_true", help="Answer yes to every prompt")
    answers.add_argument("--no-input", action="store_true", help="Answer no to every prompt")

    p.add_argument("--quiet", action="store_true", help="No per-file progress output")
    p.add_argument("--verbose", action="store_true", help="Debug logging")
    return p


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return asyncio.run(run(args))


if __name__ == "__main__":
    raise SystemExit(main())
