"""Mirror a category onto the mailbox as a folder."""

from __future__ import annotations

import re

from loguru import logger

from mailsorter.application.ports.mail_session import MailSession, MessageRef
from mailsorter.domain.entities.classified_record import UNCATEGORIZED
from mailsorter.domain.errors import CopyError, FolderError, LabelError

FOLDER_FILLER = "_"
_WHITESPACE_RUN = re.compile(r"\s+")


def folder_name_for(category: str) -> str:
    """Folder-safe name: "Personal Finance" -> "Personal_Finance".

    Categories differing only in whitespace style share one folder.
    """
    name = _WHITESPACE_RUN.sub(FOLDER_FILLER, category.strip())
    return name or UNCATEGORIZED


class LabelSynchronizer:
    def apply_label(self, session: MailSession, ref: MessageRef, category: str) -> str:
        """Ensure the category folder exists and copy the message into it.

        Only "already exists" counts as folder success; any other create
        failure is a LabelError for this message and never for the run.
        """
        folder = folder_name_for(category)
        try:
            session.ensure_folder(folder)
            session.copy_into([ref], folder)
        except (FolderError, CopyError) as e:
            raise LabelError(f"Could not label UID {ref} as {folder}: {e}") from e

        logger.info(f"Copied UID {ref} into {folder}")
        return folder
