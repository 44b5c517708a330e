import os
import stat
import typing
import logging

from .conf import ConfigLoader
from .constants import TEMP_PATH_SUFFIX, FIFO_PATH_SUFFIX, FIFO_MODE
from .exceptions import TargetError
from .mixins import ObjectIdentityMixin

__all__ = ["TargetProtocol", "FileTarget"]

logger = logging.getLogger(__name__)

conf = ConfigLoader.get_lazily_loaded_config()


@typing.runtime_checkable
class TargetProtocol(typing.Protocol):
    """A file or named pipe that a task reads from or writes to."""

    @property
    def path(self) -> str: ...

    @property
    def temp_path(self) -> str: ...

    @property
    def fifo_path(self) -> str: ...

    @property
    def is_streaming(self) -> bool: ...

    def create_fifo(self) -> None: ...

    def remove_fifo(self) -> None: ...

    def atomize(self) -> None: ...


class FileTarget(ObjectIdentityMixin):
    """
    A file on the local filesystem taking part in a task's input or output port.

    While a task runs it writes to ``temp_path``; once it is done the
    temporary file is renamed to ``path`` (atomized), so any process polling
    for ``path`` only ever sees complete files. Streaming targets are backed
    by a named pipe at ``fifo_path`` instead and are never atomized.

    Args:
        path: The final path of the file.
        do_stream: Whether the target is backed by a named pipe. Fixed at creation.
        temp_suffix: Suffix appended to ``path`` to build the temporary path.
        fifo_suffix: Suffix appended to ``path`` to build the named pipe path.
    """

    def __init__(
        self,
        path: typing.Union[str, os.PathLike, None],
        do_stream: bool = False,
        temp_suffix: typing.Optional[str] = None,
        fifo_suffix: typing.Optional[str] = None,
    ) -> None:
        super().__init__()
        self._path = os.fspath(path) if path else ""
        self._do_stream = bool(do_stream)
        self._temp_suffix = (
            temp_suffix
            if temp_suffix is not None
            else conf.get("TEMP_PATH_SUFFIX", default=TEMP_PATH_SUFFIX)
        )
        self._fifo_suffix = (
            fifo_suffix
            if fifo_suffix is not None
            else conf.get("FIFO_PATH_SUFFIX", default=FIFO_PATH_SUFFIX)
        )

    @property
    def path(self) -> str:
        return self._path

    @property
    def temp_path(self) -> str:
        return f"{self._path}{self._temp_suffix}"

    @property
    def fifo_path(self) -> str:
        return f"{self._path}{self._fifo_suffix}"

    @property
    def is_streaming(self) -> bool:
        return self._do_stream

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def temp_exists(self) -> bool:
        return os.path.exists(self.temp_path)

    def fifo_exists(self) -> bool:
        return os.path.exists(self.fifo_path)

    def open(self, mode: str = "r", **kwargs) -> typing.IO:
        """Open the final file for reading. Use ``write`` to produce output."""
        return open(self.path, mode, **kwargs)

    def read(self, binary: bool = False) -> typing.Union[str, bytes]:
        with self.open("rb" if binary else "r") as f:
            return f.read()

    def write(self, data: typing.Union[str, bytes]) -> None:
        """
        Write data to the temporary path. The data only becomes visible at the
        final path once the target is atomized.
        """
        mode = "wb" if isinstance(data, bytes) else "w"
        try:
            with open(self.temp_path, mode) as f:
                f.write(data)
        except OSError as e:
            raise TargetError(
                f"Could not write temporary file {self.temp_path}: {e}",
                params={"path": self.temp_path},
                exception=e,
            ) from e

    def atomize(self) -> None:
        """Rename the temporary file to its final path."""
        if self.is_streaming:
            raise TargetError(
                f"Streaming target {self.path} cannot be atomized",
                code="streaming_target",
                params={"path": self.path},
            )
        logger.debug(f"Atomizing file: {self.temp_path} -> {self.path}")
        try:
            os.replace(self.temp_path, self.path)
        except OSError as e:
            raise TargetError(
                f"Could not atomize {self.temp_path} -> {self.path}: {e}",
                params={"temp_path": self.temp_path, "path": self.path},
                exception=e,
            ) from e
        logger.debug(f"Done atomizing file: {self.temp_path} -> {self.path}")

    def create_fifo(self) -> None:
        mode = conf.get_int("FIFO_MODE", default=FIFO_MODE)
        logger.debug(f"Creating FIFO: {self.fifo_path}")
        try:
            os.mkfifo(self.fifo_path, mode)
        except OSError as e:
            raise TargetError(
                f"Could not create FIFO {self.fifo_path}: {e}",
                code="fifo_error",
                params={"fifo_path": self.fifo_path},
                exception=e,
            ) from e

    def remove_fifo(self) -> None:
        try:
            mode = os.lstat(self.fifo_path).st_mode
        except FileNotFoundError:
            logger.debug(f"FIFO already removed: {self.fifo_path}")
            return
        if not stat.S_ISFIFO(mode):
            raise TargetError(
                f"Refusing to remove {self.fifo_path}: not a FIFO",
                code="fifo_error",
                params={"fifo_path": self.fifo_path},
            )
        try:
            os.remove(self.fifo_path)
        except OSError as e:
            raise TargetError(
                f"Could not remove FIFO {self.fifo_path}: {e}",
                code="fifo_error",
                params={"fifo_path": self.fifo_path},
                exception=e,
            ) from e

    def __eq__(self, other):
        if not isinstance(other, FileTarget):
            return NotImplemented
        return self.path == other.path and self.is_streaming == other.is_streaming

    def __hash__(self):
        return hash((self.path, self.is_streaming))

    def __repr__(self):
        stream = ", streaming" if self.is_streaming else ""
        return f"<{self.__class__.__name__}: {self.path}{stream}>"
