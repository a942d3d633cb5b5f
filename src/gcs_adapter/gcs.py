# gcs.py
import io
import logging
import mimetypes
import shutil
import tempfile
from typing import Any, BinaryIO, Dict, List, Optional, Tuple, Union

from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload, MediaIoBaseUpload

from .exceptions import (
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    PartialOperationError,
    StorageError,
    TransportError,
)
from .storage.base import FilesystemAdapter
from .storage.dto import (
    DIRECTORY_MIMETYPE,
    AdapterOptions,
    FileContents,
    FileStream,
    ObjectMetadata,
    Visibility,
    WriteConfig,
)
from .storage.prefix import PathPrefixer

ALL_USERS = "allUsers"
PUBLIC_READ_ROLES = ("READER", "OWNER")
PREDEFINED_ACLS = {
    Visibility.PUBLIC: "publicRead",
    Visibility.PRIVATE: "private",
}


def _storage_error(e: Exception, path: str, action: str) -> StorageError:
    """Converts a client-side failure into the adapter's error taxonomy and logs it."""
    status = e.resp.status if isinstance(e, HttpError) else None
    if status == 404:
        logging.warning(f"Object '{path}' not found while trying to {action} it.")
        return ObjectNotFoundError(f"Object '{path}' not found.", path)
    logging.error(f"Failed to {action} '{path}': {e}")
    return TransportError(f"Failed to {action} '{path}': {e}", path, status=status)


def _is_seekable(stream: BinaryIO) -> bool:
    seekable = getattr(stream, "seekable", None)
    return bool(seekable and seekable())


def _visibility_from_acl(acl: List[Dict[str, Any]]) -> Visibility:
    for entry in acl:
        if entry.get("entity") == ALL_USERS and entry.get("role") in PUBLIC_READ_ROLES:
            return Visibility.PUBLIC
    return Visibility.PRIVATE


class GcsAdapter(FilesystemAdapter):
    """
    Filesystem adapter backed by a Google Cloud Storage bucket, implementing
    the FilesystemAdapter interface on top of the `storage/v1` JSON API.

    Directories are zero-byte marker objects whose name ends with '/';
    directories implied by object names are reported as well.
    """

    def __init__(
        self,
        service,
        bucket: str,
        prefix: Optional[str] = None,
        options: Optional[AdapterOptions] = None,
    ):
        self._service = service
        self._bucket = bucket
        self.prefixer = PathPrefixer(prefix)
        self.options = options or AdapterOptions()
        logging.info(
            f"GCS adapter initialized for bucket '{bucket}' with prefix '{self.prefixer.prefix}'."
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def service(self):
        """The `storage/v1` service resource used for every call."""
        return self._service

    def _normalize(self, item: Dict[str, Any]) -> ObjectMetadata:
        return ObjectMetadata.from_gcs_object(item, self.prefixer.strip_prefix(item["name"]))

    def _list_objects(
        self,
        prefix: str,
        delimiter: Optional[str] = None,
        max_results: Optional[int] = None,
        page_token: Optional[str] = None,
    ) -> Dict[str, Any]:
        params = {"bucket": self._bucket}
        if prefix:
            params["prefix"] = prefix
        if delimiter:
            params["delimiter"] = delimiter
        if max_results:
            params["maxResults"] = max_results
        if page_token:
            params["pageToken"] = page_token
        return self._service.objects().list(**params).execute()

    def _list_all(
        self, prefix: str, delimiter: Optional[str] = None
    ) -> Tuple[List[Dict[str, Any]], List[str]]:
        """
        Lists every object under a prefix, following continuation tokens
        until the listing is exhausted.

        :return: The object resources and, when a delimiter is used, the common prefixes.
        """
        page_size = self.options.page_size
        response = self._list_objects(prefix, delimiter, page_size)
        items = list(response.get("items", []))
        prefixes = list(response.get("prefixes", []))
        while response.get("nextPageToken"):
            logging.debug(f"Found more objects under '{prefix}', continuing listing...")
            response = self._list_objects(
                prefix, delimiter, page_size, page_token=response["nextPageToken"]
            )
            items.extend(response.get("items", []))
            prefixes.extend(response.get("prefixes", []))
        return items, prefixes

    def _get_object(self, path: str, key: str, **params) -> Dict[str, Any]:
        try:
            return (
                self._service.objects()
                .get(bucket=self._bucket, object=key, **params)
                .execute()
            )
        except (HttpError, OSError) as e:
            raise _storage_error(e, path, "fetch metadata of") from e

    def has(self, path: str) -> bool:
        key = self.prefixer.apply_prefix(path)
        dir_key = self.prefixer.directory_key(path)
        try:
            # An exact key sorts before every longer key sharing it as a prefix.
            items = self._list_objects(key, max_results=1).get("items", [])
            if items and (items[0]["name"] == key or items[0]["name"].startswith(dir_key)):
                return True
            items = self._list_objects(dir_key, max_results=1).get("items", [])
        except (HttpError, OSError) as e:
            raise _storage_error(e, path, "check") from e
        return bool(items)

    def _upload(
        self,
        path: str,
        key: str,
        stream: BinaryIO,
        config: Optional[WriteConfig],
        resumable: bool,
        generation: Optional[str] = None,
        current: Optional[Dict[str, Any]] = None,
    ) -> ObjectMetadata:
        """
        Uploads a stream to `key`.

        :param generation: The generation an update expects to replace. When
            omitted the write is create-only unless overwriting is enabled.
        :param current: The object resource being replaced, whose content type
            and visibility are kept when the config does not set them.
        """
        config = config or WriteConfig()
        options = config.resolve(self.options)
        current = current or {}

        mimetype = (
            config.mimetype
            or current.get("contentType")
            or mimetypes.guess_type(key)[0]
            or options.mimetype
        )
        visibility = config.visibility
        acl = None
        if visibility is None and "acl" in current:
            # Carry every existing grant over to the new generation.
            acl = [{"entity": entry["entity"], "role": entry["role"]} for entry in current["acl"]]
            visibility = _visibility_from_acl(acl)
        elif visibility is None:
            visibility = self.options.visibility

        body = {"name": key, "contentType": mimetype}
        if options.cache_control:
            body["cacheControl"] = options.cache_control
        if options.metadata:
            body["metadata"] = dict(options.metadata)
        if acl is not None:
            body["acl"] = acl

        params = {"bucket": self._bucket, "body": body}
        if visibility is not None and acl is None:
            params["predefinedAcl"] = PREDEFINED_ACLS[visibility]
        if generation is not None:
            params["ifGenerationMatch"] = generation
        elif not options.overwrite:
            # Generation 0 matches only when no live object exists.
            params["ifGenerationMatch"] = 0

        spooled = None
        try:
            if not _is_seekable(stream):
                # MediaIoBaseUpload needs to seek; buffer pipes and sockets first.
                spooled = tempfile.SpooledTemporaryFile(max_size=options.chunk_size)
                shutil.copyfileobj(stream, spooled, options.chunk_size)
                spooled.seek(0)
                stream = spooled
            params["media_body"] = MediaIoBaseUpload(
                stream, mimetype=mimetype, chunksize=options.chunk_size, resumable=resumable
            )

            logging.info(f"Uploading '{path}' to bucket '{self._bucket}'...")
            request = self._service.objects().insert(**params)
            if resumable:
                response = None
                while response is None:
                    status, response = request.next_chunk()
                    if status:
                        logging.debug(f"Uploaded {int(status.progress() * 100)}% of '{path}'.")
            else:
                response = request.execute()
        except HttpError as e:
            if e.resp.status != 412:
                raise _storage_error(e, path, "upload") from e
            if generation is None:
                logging.error(f"Object '{path}' already exists. Refusing to overwrite it.")
                raise ObjectAlreadyExistsError(f"Object '{path}' already exists.", path) from e
            logging.error(f"Object '{path}' was replaced or removed during the update.")
            raise ObjectNotFoundError(
                f"Object '{path}' was replaced or removed during the update.", path
            ) from e
        except OSError as e:
            raise _storage_error(e, path, "upload") from e
        finally:
            if spooled is not None:
                spooled.close()

        logging.info(f"Successfully uploaded '{path}'.")
        return self._normalize(response).model_copy(update={"visibility": visibility})

    def _replace(
        self, path: str, stream: BinaryIO, config: Optional[WriteConfig], resumable: bool
    ) -> ObjectMetadata:
        key = self.prefixer.apply_prefix(path)
        current = self._get_object(path, key, projection="full")
        return self._upload(
            path, key, stream, config, resumable, generation=current["generation"], current=current
        )

    def write(
        self, path: str, contents: bytes, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        key = self.prefixer.apply_prefix(path)
        return self._upload(path, key, io.BytesIO(contents), config, resumable=False)

    def write_stream(
        self, path: str, stream: BinaryIO, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        key = self.prefixer.apply_prefix(path)
        return self._upload(path, key, stream, config, resumable=True)

    def update(
        self, path: str, contents: bytes, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        return self._replace(path, io.BytesIO(contents), config, resumable=False)

    def update_stream(
        self, path: str, stream: BinaryIO, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        return self._replace(path, stream, config, resumable=True)

    def _download(self, path: str, key: str, fh: BinaryIO):
        try:
            logging.info(f"Downloading '{path}' from bucket '{self._bucket}'...")
            request = self._service.objects().get_media(bucket=self._bucket, object=key)
            downloader = MediaIoBaseDownload(fh, request, chunksize=self.options.chunk_size)
            done = False
            while not done:
                status, done = downloader.next_chunk()
        except (HttpError, OSError) as e:
            raise _storage_error(e, path, "download") from e

    def read(self, path: str) -> FileContents:
        key = self.prefixer.apply_prefix(path)
        metadata = self._normalize(self._get_object(path, key))
        buffer = io.BytesIO()
        self._download(path, key, buffer)
        return FileContents(**metadata.model_dump(), contents=buffer.getvalue())

    def read_stream(self, path: str) -> FileStream:
        key = self.prefixer.apply_prefix(path)
        metadata = self._normalize(self._get_object(path, key))
        stream = tempfile.SpooledTemporaryFile(max_size=self.options.chunk_size)
        try:
            self._download(path, key, stream)
        except StorageError:
            stream.close()
            raise
        stream.seek(0)
        return FileStream(**metadata.model_dump(), stream=stream)

    def rename(self, path: str, newpath: str) -> bool:
        """
        Copies the object to `newpath` and then deletes the source.
        If the delete fails both objects exist and PartialOperationError is raised.
        """
        if self.prefixer.apply_prefix(path) == self.prefixer.apply_prefix(newpath):
            # Copying onto itself and deleting would destroy the only copy.
            self.get_metadata(path)
            logging.info(f"'{path}' and '{newpath}' name the same object. Nothing to rename.")
            return True
        self.copy(path, newpath)
        try:
            deleted = self.delete(path)
        except StorageError as e:
            logging.error(f"Renamed '{path}' to '{newpath}' but failed to delete the source: {e}")
            raise PartialOperationError(
                f"Copied '{path}' to '{newpath}' but could not delete the source.",
                source=path,
                destination=newpath,
                completed=["copy"],
                failed="delete",
            ) from e
        if not deleted:
            logging.error(f"Renamed '{path}' to '{newpath}' but the source still exists.")
            raise PartialOperationError(
                f"Copied '{path}' to '{newpath}' but the source still exists.",
                source=path,
                destination=newpath,
                completed=["copy"],
                failed="delete",
            )
        logging.info(f"Successfully renamed '{path}' to '{newpath}'.")
        return True

    def copy(self, path: str, newpath: str) -> bool:
        """
        Server-side copy within the bucket. Large objects take several rewrite
        calls; the loop follows the rewrite token until GCS reports completion.
        """
        params = {
            "sourceBucket": self._bucket,
            "sourceObject": self.prefixer.apply_prefix(path),
            "destinationBucket": self._bucket,
            "destinationObject": self.prefixer.apply_prefix(newpath),
            "body": {},
        }
        if self.get_visibility(path) is Visibility.PUBLIC:
            params["destinationPredefinedAcl"] = PREDEFINED_ACLS[Visibility.PUBLIC]

        try:
            logging.info(f"Copying '{path}' to '{newpath}'...")
            response = self._service.objects().rewrite(**params).execute()
            while not response.get("done"):
                params["rewriteToken"] = response["rewriteToken"]
                response = self._service.objects().rewrite(**params).execute()
        except (HttpError, OSError) as e:
            raise _storage_error(e, path, "copy") from e
        return True

    def delete(self, path: str) -> bool:
        key = self.prefixer.apply_prefix(path)
        try:
            logging.info(f"Deleting '{path}'...")
            self._service.objects().delete(bucket=self._bucket, object=key).execute()
        except HttpError as e:
            if e.resp.status == 404:
                logging.warning(f"Object '{path}' not found. Nothing to delete.")
                return False
            raise _storage_error(e, path, "delete") from e
        except OSError as e:
            raise _storage_error(e, path, "delete") from e
        return not self.has(path)

    def delete_dir(self, path: str) -> bool:
        dir_key = self.prefixer.directory_key(path)
        if not dir_key:
            raise ValueError("Refusing to delete the root of an unprefixed bucket.")

        try:
            items, _ = self._list_all(dir_key)
            logging.info(f"Deleting directory '{path}' ({len(items)} objects)...")
            for item in items:
                try:
                    self._service.objects().delete(
                        bucket=self._bucket, object=item["name"]
                    ).execute()
                except HttpError as e:
                    if e.resp.status != 404:
                        raise
                    logging.warning(f"Object '{item['name']}' already gone.")
            remaining = self._list_objects(dir_key, max_results=1).get("items", [])
        except (HttpError, OSError) as e:
            raise _storage_error(e, path, "delete directory") from e
        return not remaining

    def create_dir(
        self, path: str, config: Optional[WriteConfig] = None
    ) -> Union[ObjectMetadata, bool]:
        config = config or WriteConfig()
        marker_config = config.model_copy(
            update={"mimetype": DIRECTORY_MIMETYPE, "overwrite": True}
        )
        key = self.prefixer.directory_key(path)
        metadata = self._upload(path, key, io.BytesIO(b""), marker_config, resumable=False)
        if not self.has(path):
            logging.error(f"Directory marker for '{path}' could not be confirmed.")
            return False
        return metadata

    def get_metadata(self, path: str) -> ObjectMetadata:
        key = self.prefixer.apply_prefix(path)
        try:
            item = self._service.objects().get(bucket=self._bucket, object=key).execute()
        except HttpError as e:
            if e.resp.status != 404:
                raise _storage_error(e, path, "fetch metadata of") from e
            # Not a file; maybe a directory marker.
            item = self._get_object(path, self.prefixer.directory_key(path))
        except OSError as e:
            raise _storage_error(e, path, "fetch metadata of") from e
        return self._normalize(item)

    def get_mimetype(self, path: str) -> Optional[str]:
        return self.get_metadata(path).mimetype

    def get_size(self, path: str) -> int:
        return self.get_metadata(path).size or 0

    def get_timestamp(self, path: str) -> Optional[int]:
        return self.get_metadata(path).timestamp

    def _get_acl(self, path: str, key: str) -> List[Dict[str, Any]]:
        item = self._get_object(path, key, projection="full", fields="acl")
        return item.get("acl", [])

    def get_visibility(self, path: str) -> Visibility:
        key = self.prefixer.apply_prefix(path)
        return _visibility_from_acl(self._get_acl(path, key))

    def set_visibility(self, path: str, visibility: Visibility) -> Visibility:
        """
        Grants or revokes public read access. Granting is idempotent: an
        existing all-users read grant is never duplicated.
        """
        visibility = Visibility(visibility)
        key = self.prefixer.apply_prefix(path)
        acl = [
            {"entity": entry["entity"], "role": entry["role"]}
            for entry in self._get_acl(path, key)
        ]

        if visibility is Visibility.PUBLIC:
            if _visibility_from_acl(acl) is Visibility.PRIVATE:
                acl.append({"entity": ALL_USERS, "role": "READER"})
        else:
            acl = [entry for entry in acl if entry["entity"] != ALL_USERS]

        try:
            logging.info(f"Setting visibility of '{path}' to {visibility.value}...")
            self._service.objects().patch(
                bucket=self._bucket, object=key, body={"acl": acl}
            ).execute()
        except (HttpError, OSError) as e:
            raise _storage_error(e, path, "set visibility of") from e
        return visibility

    def list_contents(self, dirname: str = "", recursive: bool = False) -> List[ObjectMetadata]:
        dir_key = self.prefixer.directory_key(dirname)
        delimiter = None if recursive else "/"
        try:
            logging.info(f"Listing contents of '{dirname}' (recursive: {recursive})...")
            items, prefixes = self._list_all(dir_key, delimiter)
        except (HttpError, OSError) as e:
            raise _storage_error(e, dirname, "list") from e

        contents = [self._normalize(item) for item in items if item["name"] != dir_key]
        contents.extend(
            ObjectMetadata.for_directory(self.prefixer.strip_prefix(prefix))
            for prefix in prefixes
        )
        return contents
