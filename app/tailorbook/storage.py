from __future__ import annotations

import os
import urllib.parse
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import boto3
from botocore.exceptions import BotoCoreError, ClientError

DEFAULT_LIST_LIMIT = 10_000


class StorageError(RuntimeError):
    pass


@dataclass(frozen=True)
class StorageEntry:
    """One listing row. Folders carry no size (size is None)."""

    name: str
    size: int | None = None

    @property
    def is_folder(self) -> bool:
        return self.size is None


class Storage:
    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError

    def open(self, key: str) -> BinaryIO:
        raise NotImplementedError

    def exists(self, key: str) -> bool:
        raise NotImplementedError

    def list_entries(self, prefix: str = "", *, limit: int = DEFAULT_LIST_LIMIT) -> list[StorageEntry]:
        """List the direct children of `prefix` (one level, folders included)."""
        raise NotImplementedError

    def public_url(self, key: str) -> str:
        raise NotImplementedError


def _clean_key(key: str) -> str:
    return (key or "").replace("\\", "/").lstrip("/")


def _join_url(base: str, key: str) -> str:
    return base.rstrip("/") + "/" + urllib.parse.quote(_clean_key(key), safe="/")


@dataclass(frozen=True)
class LocalStorage(Storage):
    root: Path
    public_base_url: str = "/media"

    def _path(self, key: str) -> Path:
        safe_key = _clean_key(key)
        p = (self.root / safe_key).resolve()
        root = self.root.resolve()
        if p != root and root not in p.parents:
            raise StorageError(f"Key escapes storage root: {key!r}")
        return p

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        p = self._path(key)
        try:
            p.parent.mkdir(parents=True, exist_ok=True)
            p.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to write {key}: {e}") from e

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        p = self._path(key)
        return p.open("rb")

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def list_entries(self, prefix: str = "", *, limit: int = DEFAULT_LIST_LIMIT) -> list[StorageEntry]:
        base = self._path(prefix) if _clean_key(prefix) else self.root
        if not base.exists():
            return []
        try:
            children = sorted(base.iterdir(), key=lambda c: c.name)
            out: list[StorageEntry] = []
            for child in children[:limit]:
                if child.is_dir():
                    out.append(StorageEntry(name=child.name))
                else:
                    out.append(StorageEntry(name=child.name, size=child.stat().st_size))
            return out
        except OSError as e:
            raise StorageError(f"Failed to list {prefix or '/'}: {e}") from e

    def public_url(self, key: str) -> str:
        return _join_url(self.public_base_url, key)


@dataclass(frozen=True)
class S3Storage(Storage):
    endpoint: str
    region: str
    bucket: str
    access_key_id: str
    secret_access_key: str
    public_base_url: str = ""

    def _client(self):
        return boto3.client(
            "s3",
            endpoint_url=f"https://{self.endpoint}" if self.endpoint else None,
            region_name=self.region or None,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
        )

    def put_bytes(self, key: str, data: bytes, *, content_type: str | None = None) -> None:
        extra: dict[str, object] = {"ACL": "public-read"}
        if content_type:
            extra["ContentType"] = content_type
        try:
            self._client().put_object(Bucket=self.bucket, Key=_clean_key(key), Body=data, **extra)
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e

    def remove(self, key: str) -> None:
        # delete_object succeeds for keys that are already gone, so retries are safe.
        try:
            self._client().delete_object(Bucket=self.bucket, Key=_clean_key(key))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to remove {key}: {e}") from e

    def open(self, key: str) -> BinaryIO:
        try:
            obj = self._client().get_object(Bucket=self.bucket, Key=_clean_key(key))
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to read {key}: {e}") from e
        return obj["Body"]  # type: ignore[return-value]

    def exists(self, key: str) -> bool:
        try:
            self._client().head_object(Bucket=self.bucket, Key=_clean_key(key))
            return True
        except ClientError:
            return False

    def list_entries(self, prefix: str = "", *, limit: int = DEFAULT_LIST_LIMIT) -> list[StorageEntry]:
        pfx = _clean_key(prefix)
        if pfx and not pfx.endswith("/"):
            pfx += "/"
        out: list[StorageEntry] = []
        kwargs: dict[str, object] = {"Bucket": self.bucket, "Prefix": pfx, "Delimiter": "/"}
        client = self._client()
        try:
            while len(out) < limit:
                resp = client.list_objects_v2(MaxKeys=min(1000, limit - len(out)), **kwargs)
                for cp in resp.get("CommonPrefixes") or []:
                    name = cp["Prefix"][len(pfx):].rstrip("/")
                    out.append(StorageEntry(name=name))
                for obj in resp.get("Contents") or []:
                    name = obj["Key"][len(pfx):]
                    if not name:
                        continue
                    out.append(StorageEntry(name=name, size=int(obj.get("Size") or 0)))
                if not resp.get("IsTruncated"):
                    break
                kwargs["ContinuationToken"] = resp["NextContinuationToken"]
        except (BotoCoreError, ClientError) as e:
            raise StorageError(f"Failed to list {prefix or '/'}: {e}") from e
        return out[:limit]

    def public_url(self, key: str) -> str:
        base = self.public_base_url
        if not base:
            if self.endpoint:
                base = f"https://{self.bucket}.{self.endpoint}"
            else:
                base = f"https://{self.bucket}.s3.{self.region}.amazonaws.com"
        return _join_url(base, key)


def storage_from_config(config) -> Storage:
    backend = (config.get("STORAGE_BACKEND") or "local").strip().lower()
    public_base = (config.get("STORAGE_PUBLIC_BASE_URL") or "").strip()
    if backend == "s3":
        return S3Storage(
            endpoint=(config.get("S3_ENDPOINT") or "").strip(),
            region=(config.get("S3_REGION") or "nyc3").strip(),
            bucket=(config.get("S3_BUCKET") or "").strip(),
            access_key_id=(config.get("S3_ACCESS_KEY_ID") or "").strip(),
            secret_access_key=(config.get("S3_SECRET_ACCESS_KEY") or "").strip(),
            public_base_url=public_base,
        )
    # default local
    root_raw = (config.get("STORAGE_LOCAL_ROOT") or "").strip()
    root = Path(root_raw) if root_raw else Path(os.getcwd()) / "storage"
    return LocalStorage(root=root, public_base_url=public_base or "/media")
