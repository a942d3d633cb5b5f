# storage/base.py
from abc import ABC, abstractmethod
from typing import BinaryIO, List, Optional, Union

from .dto import FileContents, FileStream, ObjectMetadata, Visibility, WriteConfig


class FilesystemAdapter(ABC):
    """
    The capability set a filesystem abstraction layer expects from a
    storage backend. Paths are relative to whatever root or prefix the
    concrete adapter is scoped to.
    """

    @abstractmethod
    def has(self, path: str) -> bool:
        """
        Checks whether a file or directory exists.

        :param path: The path to check.
        :return: True if something exists at the path, False otherwise.
        """
        pass

    @abstractmethod
    def write(
        self, path: str, contents: bytes, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        """
        Writes a new file.

        :param path: The destination path.
        :param contents: The file contents.
        :param config: Optional per-call write options.
        :return: Metadata of the written file.
        """
        pass

    @abstractmethod
    def write_stream(
        self, path: str, stream: BinaryIO, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        """
        Writes a new file from a binary file object without reading it into memory.
        """
        pass

    @abstractmethod
    def update(
        self, path: str, contents: bytes, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        """
        Overwrites an existing file. Fails if the file does not exist.
        """
        pass

    @abstractmethod
    def update_stream(
        self, path: str, stream: BinaryIO, config: Optional[WriteConfig] = None
    ) -> ObjectMetadata:
        """
        Overwrites an existing file from a binary file object.
        """
        pass

    @abstractmethod
    def read(self, path: str) -> FileContents:
        """
        Reads a file.

        :param path: The path of the file.
        :return: The file's metadata together with its contents.
        """
        pass

    @abstractmethod
    def read_stream(self, path: str) -> FileStream:
        """
        Reads a file as a stream.

        :param path: The path of the file.
        :return: The file's metadata together with a rewound binary stream.
        """
        pass

    @abstractmethod
    def rename(self, path: str, newpath: str) -> bool:
        """
        Renames (moves) a file.

        :param path: The current path.
        :param newpath: The new path.
        """
        pass

    @abstractmethod
    def copy(self, path: str, newpath: str) -> bool:
        """
        Copies a file.

        :param path: The source path.
        :param newpath: The destination path.
        """
        pass

    @abstractmethod
    def delete(self, path: str) -> bool:
        """
        Deletes a file.

        :param path: The path of the file to delete.
        :return: True if the file no longer exists.
        """
        pass

    @abstractmethod
    def delete_dir(self, path: str) -> bool:
        """
        Deletes a directory together with everything below it.
        """
        pass

    @abstractmethod
    def create_dir(
        self, path: str, config: Optional[WriteConfig] = None
    ) -> Union[ObjectMetadata, bool]:
        """
        Creates a directory.

        :return: Metadata of the directory, or False if it could not be created.
        """
        pass

    @abstractmethod
    def get_metadata(self, path: str) -> ObjectMetadata:
        pass

    @abstractmethod
    def get_mimetype(self, path: str) -> Optional[str]:
        pass

    @abstractmethod
    def get_size(self, path: str) -> int:
        pass

    @abstractmethod
    def get_timestamp(self, path: str) -> Optional[int]:
        pass

    @abstractmethod
    def get_visibility(self, path: str) -> Visibility:
        pass

    @abstractmethod
    def set_visibility(self, path: str, visibility: Visibility) -> Visibility:
        pass

    @abstractmethod
    def list_contents(self, dirname: str = "", recursive: bool = False) -> List[ObjectMetadata]:
        """
        Lists the contents of a directory.

        :param dirname: The directory to list; empty for the root.
        :param recursive: Whether to descend into subdirectories.
        :return: A list of metadata records.
        """
        pass
