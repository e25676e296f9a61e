import glob
import os
import shutil
import sys


def find_ffmpeg():
    """Return the ffmpeg executable path, or None when it is not installed.

    Checks PATH first, then the usual install locations per platform.
    """
    path = shutil.which("ffmpeg")
    if path:
        return path

    if sys.platform == "darwin":
        # Homebrew install locations (Intel and Apple Silicon)
        candidates = ["/usr/local/bin/ffmpeg", "/opt/homebrew/bin/ffmpeg"]
    elif sys.platform == "win32":
        # WinGet install location
        winget_pattern = os.path.join(
            os.environ.get("LOCALAPPDATA", ""),
            "Microsoft", "WinGet", "Packages", "*ffmpeg*", "**", "ffmpeg.exe",
        )
        candidates = glob.glob(winget_pattern, recursive=True)
    else:
        candidates = ["/usr/bin/ffmpeg", "/usr/local/bin/ffmpeg"]

    for candidate in candidates:
        if os.path.isfile(candidate):
            return candidate
    return None


def find_ffmpeg_dir():
    """Return the directory containing ffmpeg (for --ffmpeg-location), or None."""
    path = find_ffmpeg()
    return os.path.dirname(path) if path else None


def ffmpeg_install_hint() -> str:
    if sys.platform == "darwin":
        return "brew install ffmpeg"
    if sys.platform == "win32":
        return "winget install FFmpeg"
    return "sudo apt install ffmpeg  (or your distro's equivalent)"
