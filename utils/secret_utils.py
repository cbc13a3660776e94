from google.api_core.exceptions import GoogleAPICallError
from google.auth.exceptions import DefaultCredentialsError
from google.cloud import secretmanager

from etl.errors import CredentialError


def fetch_secret(project_id, secret_id, version="latest", client=None):
    """
    Reads a secret payload from Google Secret Manager.

    Args:
        project_id: GCP project that owns the secret
        secret_id: Secret name
        version: Version number or "latest"
        client: Optional SecretManagerServiceClient (one is created if omitted)

    Returns:
        The secret payload decoded as UTF-8 text

    Raises:
        CredentialError: if the secret or version does not exist or cannot be read
    """
    if not all([project_id, secret_id, version]):
        raise CredentialError("Secret project, name and version must all be set.")

    name = f"projects/{project_id}/secrets/{secret_id}/versions/{version}"
    print(f"-> Reading secret: {name}")

    try:
        if client is None:
            client = secretmanager.SecretManagerServiceClient()
        response = client.access_secret_version(request={"name": name})
        return response.payload.data.decode("UTF-8")
    except (GoogleAPICallError, DefaultCredentialsError, UnicodeDecodeError) as e:
        raise CredentialError(f"Could not access secret {name}: {e}") from e
