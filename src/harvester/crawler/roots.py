from __future__ import annotations

import logging
from typing import Iterable

from ..drive.client import RemoteClient, drive_link
from ..drive.errors import RemoteError
from ..prompts import Prompter
from .models import Root, RootRef, ScanCancelled

logger = logging.getLogger(__name__)


async def resolve_roots(
    client: RemoteClient,
    refs: Iterable[RootRef],
    *,
    prompter: Prompter,
) -> list[Root]:
    """
    Fetch each configured root once to learn its name and whether it is a file.

    Roots that can't be read are dropped. If any were dropped, the operator
    is asked whether to continue with the rest.

    Raises:
        ScanCancelled: If the operator declines to continue.
    """
    unique: list[RootRef] = []
    seen: set[str] = set()
    for ref in refs:
        if not ref.drive_id or ref.drive_id in seen:
            continue
        seen.add(ref.drive_id)
        unique.append(ref)

    logger.info("Reading %d Google Drive folder%s.", len(unique), "" if len(unique) == 1 else "s")

    roots: list[Root] = []
    failed = 0
    for ref in unique:
        try:
            item = await client.get_item(ref.drive_id)
        except RemoteError as exc:
            logger.warning("Unable to read [%s]: %s", drive_link(ref.drive_id), exc)
            failed += 1
            continue

        roots.append(
            Root(
                root_id=ref.drive_id,
                owner_label=ref.owner_name or item.name,
                is_file_root=not item.is_folder,
            )
        )

    if failed:
        logger.warning("Errors occurred when scanning Google Drive, and %d folder(s) couldn't be accessed.", failed)
        if not prompter.confirm("Continue downloading the remaining bundles?"):
            raise ScanCancelled("Scan cancelled.")

    return roots
