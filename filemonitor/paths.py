"""
Path normalization between POSIX and Windows path styles.

Only strings are transformed here; the filesystem is never consulted.
"""

import os

POSIX = "posix"
WINDOWS = "windows"
PATH_STYLES = (POSIX, WINDOWS)

DRIVE_PREFIX = "C:\\"


def host_path_style() -> str:
    """Return the path style of the running interpreter's OS."""
    return WINDOWS if os.name == "nt" else POSIX


def normalize(path: str, target_os: str) -> str:
    """
    Rewrite a path into the canonical form for target_os.

    Windows target: "/data/x" becomes "C:\\data\\x"; anything else only gets
    its forward slashes turned into backslashes.
    POSIX target: "C:\\data\\x" becomes "/data/x"; anything else only gets
    its backslashes turned into forward slashes.

    Args:
        path (str): Path as reported by the watch backend or the config.
        target_os (str): Either "posix" or "windows".

    Returns:
        str: The normalized path.
    """
    if target_os == WINDOWS:
        if path.startswith("/"):
            return "C:" + path.replace("/", "\\")
        return path.replace("/", "\\")
    if target_os == POSIX:
        if path.startswith(DRIVE_PREFIX):
            path = "/" + path[len(DRIVE_PREFIX):]
        return path.replace("\\", "/")
    raise ValueError(f"Unknown path style: {target_os}")
