"""Depot-path filters applied before files are scheduled for review."""

import fnmatch

NON_REVIEWABLE_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".svg",
    ".ico",
    ".bmp",
    ".tga",
    ".psd",
    ".pdf",
    ".woff",
    ".woff2",
    ".ttf",
    ".otf",
    ".mp4",
    ".mp3",
    ".wav",
    ".ogg",
    ".zip",
    ".tar",
    ".gz",
    ".7z",
    ".dll",
    ".exe",
    ".lib",
    ".pdb",
    ".lock",  # e.g. package-lock.json, poetry.lock
}


def is_reviewable_path(depot_path: str) -> bool:
    return not any(depot_path.lower().endswith(ext) for ext in NON_REVIEWABLE_EXTENSIONS)


def is_excluded(depot_path: str, patterns: list[str]) -> bool:
    """Return True if depot_path matches any exclude pattern.

    Supports:
    - fnmatch globs on the full depot path: "//depot/generated/*.cs"
    - fnmatch globs on the basename: "*.min.js", "*.designer.cs"
    - Directory names/prefixes: "//depot/third_party/", "vendor" (matches any file within that tree)
    """
    basename = depot_path.rsplit("/", 1)[-1]
    for pattern in patterns:
        if fnmatch.fnmatch(depot_path, pattern):
            return True
        if fnmatch.fnmatch(basename, pattern):
            return True
        prefix = pattern.rstrip("/") + "/"
        if depot_path.startswith(prefix) or ("/" + prefix.lstrip("/")) in depot_path:
            return True
    return False
