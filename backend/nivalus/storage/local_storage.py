from pathlib import Path
from typing import Optional
from nivalus.core.config import settings

AVATAR_URL_PREFIX = "/Uploads/avatars"


class AvatarStorage:
    """Stores avatar images on local disk, one file per user"""

    def __init__(self, upload_dir: Optional[str] = None):
        self.avatar_dir = Path(upload_dir or settings.UPLOAD_DIR) / "avatars"
        self.avatar_dir.mkdir(parents=True, exist_ok=True)

    def save_avatar(self, user_id: int, extension: str, content: bytes) -> str:
        """
        Write the avatar and return its public path.

        The filename is derived from the user id, so an upload replaces any
        earlier avatar with the same extension; other extensions are removed.
        """
        extension = extension.lower()
        for stale in self.avatar_dir.glob(f"avatar-{user_id}.*"):
            if stale.suffix.lower() != extension:
                stale.unlink()

        filename = f"avatar-{user_id}{extension}"
        with open(self.avatar_dir / filename, "wb") as f:
            f.write(content)

        return f"{AVATAR_URL_PREFIX}/{filename}"

    def get_file_path(self, avatar_path: str) -> Path:
        """Map a public avatar path back to the file on disk"""
        return self.avatar_dir / Path(avatar_path).name

    def delete_avatar(self, avatar_path: Optional[str]) -> bool:
        """Delete the file behind a public avatar path"""
        if not avatar_path:
            return False
        file_path = self.get_file_path(avatar_path)
        if file_path.exists():
            file_path.unlink()
            return True
        return False


storage = AvatarStorage()


def get_storage() -> AvatarStorage:
    return storage
