"""
Caller identity.

Every call carries a stable uid: the app key address when the user has
configured one, otherwise a device id generated on first use.
"""
import json
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .exceptions import IdentityError
from .logging import get_logger


@dataclass(frozen=True)
class AuthConfig:
    """App key credentials."""
    address: str
    token: str

    def to_dict(self) -> dict:
        return {'address': self.address, 'token': self.token}


def parse_combined_token(combined: str) -> AuthConfig:
    """
    Parse an app key of the form "<address>-<jwt>".

    Splits at the first dash only, so dashes inside the token survive.

    Raises:
        IdentityError: If the key is malformed
    """
    first_dash = combined.find('-')
    if first_dash <= 0 or first_dash == len(combined) - 1:
        raise IdentityError('Invalid token format. Expected "<address>-<jwt>".')
    address = combined[:first_dash].strip()
    token = combined[first_dash + 1:].strip()
    if not address or not token:
        raise IdentityError('Invalid token content. Address or token is empty.')
    return AuthConfig(address=address, token=token)


class AuthStore:
    """App key storage in <config_dir>/auth.json."""

    FILE_NAME = 'auth.json'

    def __init__(self, config_dir: Path):
        self._path = Path(config_dir) / self.FILE_NAME
        self._logger = get_logger('pinmepy.identity')

    @property
    def path(self) -> Path:
        return self._path

    def set(self, combined: str) -> AuthConfig:
        """Parse and persist an app key."""
        auth = parse_combined_token(combined)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(auth.to_dict(), indent=2), encoding='utf-8')
        return auth

    def get(self) -> Optional[AuthConfig]:
        """Load the app key, or None if absent or unreadable."""
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            self._logger.warning(f"Ignoring unreadable auth file {self._path}: {e}")
            return None
        if not isinstance(data, dict) or not data.get('address') or not data.get('token'):
            return None
        return AuthConfig(address=data['address'], token=data['token'])

    def clear(self) -> bool:
        """Delete the app key; returns True if one existed."""
        if self._path.exists():
            self._path.unlink()
            return True
        return False


class DeviceIdStore:
    """Device id stored in <config_dir>/device-id, generated once."""

    FILE_NAME = 'device-id'

    def __init__(self, config_dir: Path):
        self._path = Path(config_dir) / self.FILE_NAME

    def get(self) -> str:
        if self._path.exists():
            device_id = self._path.read_text(encoding='utf-8').strip()
            if device_id:
                return device_id
        device_id = str(uuid.uuid4())
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(device_id, encoding='utf-8')
        return device_id


class IdentityProvider:
    """Supplies the uid sent on every call."""

    def __init__(self, config_dir: Path):
        self.auth = AuthStore(config_dir)
        self.device = DeviceIdStore(config_dir)

    def get_uid(self) -> str:
        """
        Address of the configured app key, else the device id.

        Raises:
            IdentityError: If neither is available
        """
        auth = self.auth.get()
        if auth is not None:
            return auth.address
        try:
            uid = self.device.get()
        except OSError as e:
            raise IdentityError(f"Device ID not found: {e}") from e
        if not uid:
            raise IdentityError('Device ID not found')
        return uid
