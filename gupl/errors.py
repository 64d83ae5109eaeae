"""
Error types and exit codes for gupl.

Every failure the server or CLI can report falls into one of three kinds:

- ClientProtocolError: the request itself is wrong (bad service name,
  unsupported path). Rejected with 400, never logged as a server fault.
- ExternalToolFailure: git exited unsuccessfully or could not be started.
  Reported as an opaque 500; the detail stays in the server log.
- FilesystemError: creating, staging or renaming a repository failed.
  Reported as an opaque 500 and logged.
"""
from typing import Optional, Sequence

# Standard POSIX exit codes
SUCCESS = 0              # Successful termination
GENERAL_ERROR = 1        # General errors
USAGE_ERROR = 2          # Misuse of shell command (wrong arguments, etc.)

# Application-specific exit codes
EXTERNAL_TOOL_ERROR = 65  # git exited with a non-zero status
CONFIG_ERROR = 66         # Configuration file error
PERMISSION_ERROR = 67     # Insufficient permissions
FILESYSTEM_ERROR = 74     # Repository storage failed (EX_IOERR)
INTERRUPTED = 130         # Terminated by Ctrl+C (SIGINT)

# Exit code mappings for common exceptions
EXCEPTION_EXIT_CODES = {
    'FileNotFoundError': GENERAL_ERROR,
    'PermissionError': PERMISSION_ERROR,
    'ValueError': USAGE_ERROR,
    'KeyboardInterrupt': INTERRUPTED,
}


class GuplError(Exception):
    """Base class for errors that carry an exit code and an HTTP status."""
    exit_code = GENERAL_ERROR
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ClientProtocolError(GuplError):
    """The client asked for something the protocol bridge does not serve."""
    exit_code = USAGE_ERROR
    http_status = 400


class ExternalToolFailure(GuplError):
    """
    A delegated git invocation failed.

    Keeps the command line, return code and stderr so the server can log
    them; none of it is sent to the client.
    """
    exit_code = EXTERNAL_TOOL_ERROR

    def __init__(
        self,
        message: str,
        cmd: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        stderr: bytes = b"",
    ):
        super().__init__(message)
        self.cmd = list(cmd) if cmd else []
        self.returncode = returncode
        self.stderr = stderr

    def detail(self) -> str:
        """Human-readable description for server logs."""
        parts = [self.message]
        if self.cmd:
            parts.append(f"cmd={' '.join(self.cmd)}")
        if self.returncode is not None:
            parts.append(f"returncode={self.returncode}")
        if self.stderr:
            parts.append(f"stderr={self.stderr.decode('utf-8', 'replace').strip()}")
        return ' '.join(parts)


class FilesystemError(GuplError):
    """Unexpected I/O failure while materializing a repository."""
    exit_code = FILESYSTEM_ERROR


def get_exit_code_for_exception(exc: Exception) -> int:
    """
    Get the appropriate exit code for an exception.

    Args:
        exc: The exception that occurred

    Returns:
        Appropriate exit code
    """
    if isinstance(exc, GuplError):
        return exc.exit_code
    return EXCEPTION_EXIT_CODES.get(exc.__class__.__name__, GENERAL_ERROR)
