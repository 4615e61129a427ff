"""Identity of the current user, host and process.

The lock handle receives an Identity instead of reading these values ad
hoc, so tests can fabricate other users, hosts and processes.
"""

import getpass
import logging
import os
import socket
import sys

from .errors import LivenessQueryError
from .liveness import LivenessOracle
from .models import Identity

logger = logging.getLogger(__name__)


def _strip_newlines(value: str) -> str:
    return value.replace("\r", "").replace("\n", "")


def current_login_name() -> str:
    """Return the login name of the current user.

    Checks USERNAME (Windows) and USER before asking the password
    database. Returns an empty string and logs a warning if none works.
    """
    for var in ("USERNAME", "USER"):
        name = os.environ.get(var, "").strip()
        if name:
            return _strip_newlines(name)
    try:
        name = getpass.getuser().strip()
    except (OSError, KeyError, ImportError):
        name = ""
    if not name:
        logger.warning("Could not determine the system's username")
    return _strip_newlines(name)


def current_display_name() -> str:
    """Return the full name of the current user, or "" if unknown."""
    name = ""
    if sys.platform != "win32":
        import pwd

        try:
            gecos = pwd.getpwuid(os.getuid()).pw_gecos
        except KeyError:
            logger.warning("Could not fetch user info via getpwuid")
        else:
            parts = [p for p in gecos.split(",") if p]
            if parts:
                name = parts[0].strip()
    if not name:
        logger.debug("Could not determine the system's full username")
    return _strip_newlines(name)


def current_host_name() -> str:
    """Return the host name of this machine."""
    hostname = socket.gethostname().strip()
    if not hostname:
        logger.warning("Could not determine the system's hostname")
    return _strip_newlines(hostname)


def current_identity(oracle: LivenessOracle) -> Identity:
    """Resolve the identity of the running process.

    Args:
        oracle: Liveness oracle used to look up this process's start time

    Returns:
        Identity for the current user, host and process

    Raises:
        LivenessQueryError: If the start time of this process is unavailable
    """
    pid = os.getpid()
    started = oracle.process_start_time(pid)
    if started is None:
        raise LivenessQueryError(f"Could not determine the start time of this process ({pid})")
    return Identity(
        display_name=current_display_name(),
        login_name=current_login_name(),
        host_name=current_host_name(),
        pid=pid,
        process_start_time=started,
    )
