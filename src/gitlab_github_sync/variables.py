"""Migrate GitLab CI/CD variables into GitHub Actions secrets.

GitHub never returns secret values, only names. A secret that already exists
on GitHub is therefore left alone even if the GitLab value changed: the
comparison is by name only and every secret is written at most once.

Values are encrypted client-side with a libsodium sealed box under the
repository public key before upload.
"""

from __future__ import annotations

import logging
import re
from base64 import b64encode
from dataclasses import dataclass
from typing import TYPE_CHECKING

from github import GithubException
from nacl import encoding, public
from nacl.exceptions import CryptoError

from .exceptions import MigrationError

if TYPE_CHECKING:
    from collections.abc import Sequence

    from github import Github
    from github.Repository import Repository as GithubRepository

    from .models import SecretVariable

logger: logging.Logger = logging.getLogger(__name__)

_VALID_SECRET_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class SecretEncryptionError(MigrationError):
    """Raised when a secret value cannot be sealed for upload."""


@dataclass(frozen=True)
class RepositoryPublicKey:
    key_id: str
    key: str  # base64 encoded Curve25519 public key


def is_valid_secret_name(name: str) -> bool:
    """GitHub secret names: letters, digits and underscores, no leading digit, no GITHUB_ prefix."""
    return bool(_VALID_SECRET_NAME.match(name)) and not name.upper().startswith("GITHUB_")


def encrypt_secret(public_key: str, secret_value: str) -> str:
    """Seal a value under a base64 public key and return the base64 ciphertext."""
    try:
        sealed_box = public.SealedBox(public.PublicKey(public_key.encode("utf-8"), encoding.Base64Encoder()))
        encrypted = sealed_box.encrypt(secret_value.encode("utf-8"))
    except (CryptoError, ValueError, TypeError) as e:
        msg = f"Invalid repository public key: {e}"
        raise SecretEncryptionError(msg) from e
    return b64encode(encrypted).decode("utf-8")


def get_public_key(github_repo: GithubRepository) -> RepositoryPublicKey:
    """Fetch the current Actions public key of the repository."""
    try:
        key = github_repo.get_public_key()
    except GithubException as e:
        msg = f"Failed to fetch public key for {github_repo.full_name}: {e}"
        raise SecretEncryptionError(msg) from e

    if not key.key or not key.key_id:
        msg = f"GitHub returned no usable public key for {github_repo.full_name}"
        raise SecretEncryptionError(msg)
    return RepositoryPublicKey(key_id=str(key.key_id), key=key.key)


def get_secret_names(github_repo: GithubRepository) -> set[str]:
    """Return existing Actions secret names, upper-cased as GitHub stores them."""
    try:
        return {secret.name.upper() for secret in github_repo.get_secrets()}
    except GithubException as e:
        msg = f"Failed to list secrets for {github_repo.full_name}: {e}"
        raise MigrationError(msg) from e


def upload_secret(
    github_client: Github,
    github_repo: GithubRepository,
    name: str,
    encrypted_value: str,
    key_id: str,
) -> None:
    """Create the secret from an already encrypted value.

    Repository.create_secret is not used: it takes the plaintext and fetches the
    public key on every call, while migrate_secrets seals each value itself under
    a key fetched once per repository.
    """
    endpoint = f"/repos/{github_repo.full_name}/actions/secrets/{name}"
    payload = {"encrypted_value": encrypted_value, "key_id": key_id}
    # Raises GithubException on any non-2xx answer
    github_client.requester.requestJsonAndCheck("PUT", endpoint, input=payload)


def migrate_secrets(
    variables: Sequence[SecretVariable],
    github_client: Github,
    github_repo: GithubRepository,
) -> int:
    """Create a GitHub secret for every GitLab variable whose name is not yet taken.

    The public key is fetched at most once per call after a successful fetch; a
    failed fetch is retried for the next variable.

    Returns:
        Number of secrets created

    Raises:
        MigrationError: If the existing secret names cannot be listed
    """
    existing = get_secret_names(github_repo)
    public_key: RepositoryPublicKey | None = None
    created = 0

    for variable in variables:
        name = variable.key.upper()

        if name in existing:
            logger.debug(f"Secret {name} already exists, skipping")
            continue
        if not is_valid_secret_name(variable.key):
            logger.warning(f"Skipping variable {variable.key}: not a valid GitHub secret name")
            continue
        if not variable.value:
            logger.warning(f"Skipping variable {variable.key}: empty value")
            continue

        try:
            if public_key is None:
                public_key = get_public_key(github_repo)
            encrypted_value = encrypt_secret(public_key.key, variable.value)
        except SecretEncryptionError as e:
            logger.warning(f"Skipping secret {name}: {e}")
            continue

        try:
            upload_secret(github_client, github_repo, name, encrypted_value, public_key.key_id)
        except GithubException as e:
            logger.warning(f"Failed to create secret {name}: {e}")
            continue

        # Same key under another GitLab environment scope is not uploaded twice
        existing.add(name)
        created += 1
        logger.debug(f"Created secret {name}")

    logger.info(f"Created {created} of {len(variables)} secrets")
    return created
