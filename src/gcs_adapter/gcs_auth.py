# gcs_auth.py
import json
import logging
import os
from typing import Optional

from google.auth.transport.requests import Request
from google.oauth2 import service_account
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

# Changing object ACLs needs full control; read/write is not enough.
SCOPES = ["https://www.googleapis.com/auth/devstorage.full_control"]
TOKEN_PATH = "gcs_token.json"


def build_storage_service(credentials_json: str, token_json: Optional[str] = None):
    """
    Builds a `storage/v1` service resource.

    With `token_json` the credentials are an OAuth user token produced by
    `gcs_authenticate()`, and `credentials_json` is the OAuth client file.
    Without it, `credentials_json` must be a service account key.
    """
    try:
        credentials_data = json.loads(credentials_json)

        if token_json:
            token_info = json.loads(token_json)
            # credentials.json nests the client under "installed" or "web".
            client_info = (
                credentials_data.get("installed")
                or credentials_data.get("web")
                or credentials_data
            )
            if "client_id" in client_info and "client_secret" in client_info:
                token_info["client_id"] = client_info["client_id"]
                token_info["client_secret"] = client_info["client_secret"]
            else:
                logging.warning(
                    "client_id or client_secret not found in GCS_CREDENTIALS_JSON. Using existing from token_json if available."
                )
            creds = Credentials.from_authorized_user_info(info=token_info, scopes=SCOPES)
        else:
            creds = service_account.Credentials.from_service_account_info(
                credentials_data, scopes=SCOPES
            )

        service = build("storage", "v1", credentials=creds, cache_discovery=False)
        logging.info("Google Cloud Storage service initialized successfully.")
        return service
    except Exception as e:
        logging.error(f"Failed to initialize Google Cloud Storage service. Error: {e}")
        raise


def gcs_authenticate(token_path: str = TOKEN_PATH):
    """
    Handles the OAuth 2.0 flow for the Cloud Storage API.
    It prompts the user for the path to their credentials.json file,
    and generates a token file usable as GCS_TOKEN_JSON.
    """
    creds = None

    # Check if a token file already exists
    if os.path.exists(token_path):
        with open(token_path, "r") as token_file:
            creds = Credentials.from_authorized_user_info(json.load(token_file), SCOPES)

    if creds and creds.valid:
        print(f"Token in {token_path} is still valid.")
        return creds

    if creds and creds.expired and creds.refresh_token:
        creds.refresh(Request())
    else:
        creds_path = input("Please enter the path to your credentials.json file: ")
        if not os.path.exists(creds_path):
            print("Error: The provided path to credentials.json is invalid.")
            return None
        with open(creds_path, "r") as creds_file:
            client_config = json.load(creds_file)

        flow = InstalledAppFlow.from_client_config(client_config, SCOPES)
        creds = flow.run_local_server(port=0)

    # Save the credentials for the next run
    with open(token_path, "w") as token_file:
        token_file.write(creds.to_json())
    print(f"Token saved to {token_path}")
    return creds


if __name__ == "__main__":
    gcs_authenticate()
