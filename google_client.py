# google_client.py
import os

from google.auth.transport.requests import AuthorizedSession, Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

SCOPES = [
    "https://www.googleapis.com/auth/drive",
    "https://www.googleapis.com/auth/spreadsheets",
]

TOKEN_FILE = os.getenv("GOOGLE_TOKEN_FILE", "token_sheets.json")


def get_credentials():
    creds = None
    creds_json = os.getenv("GOOGLE_CREDENTIALS_JSON")

    if os.path.exists(TOKEN_FILE):
        creds = Credentials.from_authorized_user_file(TOKEN_FILE, SCOPES)

    if creds and creds.valid:
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    else:
        if not creds_json:
            raise RuntimeError("GOOGLE_CREDENTIALS_JSON is not set in the environment")
        flow = InstalledAppFlow.from_client_secrets_file(
            creds_json,
            SCOPES,
        )
        creds = flow.run_local_server(port=0)

    with open(TOKEN_FILE, "w") as token:
        token.write(creds.to_json())

    return creds


def get_drive_service():
    creds = get_credentials()
    return build("drive", "v3", credentials=creds, cache_discovery=False)


def get_sheets_service():
    creds = get_credentials()
    return build("sheets", "v4", credentials=creds, cache_discovery=False)


def get_authorized_session() -> AuthorizedSession:
    """requests.Session that sends the OAuth token, for the spreadsheet export URLs."""
    return AuthorizedSession(get_credentials())
