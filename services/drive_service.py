# services/drive_service.py
import logging
import time
from typing import Callable, Dict, List, Optional

from googleapiclient.discovery import Resource
from googleapiclient.http import MediaIoBaseUpload

logger = logging.getLogger(__name__)


def find_file_in_folder_by_name(
    drive: Resource,
    folder_id: str,
    filename: str,
) -> Optional[Dict]:
    escaped = filename.replace("\\", "\\\\").replace("'", "\\'")
    query = (
        f"name = '{escaped}' and "
        f"'{folder_id}' in parents and "
        f"trashed = false"
    )

    resp = drive.files().list(
        q=query,
        fields="files(id, name, mimeType)",
        pageSize=1,
    ).execute()

    files: List[Dict] = resp.get("files", [])
    return files[0] if files else None


def upload_file_to_folder(
    drive: Resource,
    folder_id: str,
    filename: str,
    mimetype: str,
    media_stream,
) -> str:
    media = MediaIoBaseUpload(
        media_stream,
        mimetype=mimetype,
        resumable=False,
    )

    metadata = {
        "name": filename,
        "parents": [folder_id],
    }

    file = drive.files().create(
        body=metadata,
        media_body=media,
        fields="id",
    ).execute()

    return file["id"]


def ensure_file_public_and_get_url(drive: Resource, file_id: str) -> str:
    """
    Make the file readable by anyone with the link and return a direct download URL,
    so the webhook consumer can fetch the invoice without Google credentials.
    """
    drive.permissions().create(
        fileId=file_id,
        body={"type": "anyone", "role": "reader"},
        fields="id",
    ).execute()

    return f"https://drive.google.com/uc?id={file_id}&export=download"


def wait_for_file(
    drive: Resource,
    folder_id: str,
    filename: str,
    *,
    attempts: int = 5,
    initial_delay: float = 0.5,
    sleep: Callable[[float], None] = time.sleep,
) -> Optional[Dict]:
    """
    Poll the folder until `filename` is listed, doubling the delay each time.
    Returns the file entry, or None once `attempts` listings came back empty.
    """
    delay = initial_delay
    for attempt in range(1, attempts + 1):
        found = find_file_in_folder_by_name(drive, folder_id, filename)
        if found:
            return found

        logger.info('File "%s" not listed yet (%d/%d)', filename, attempt, attempts)
        if attempt < attempts:
            sleep(delay)
            delay *= 2

    return None
