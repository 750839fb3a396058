"""Custom setup.py to stamp build information into the package.

pyproject.toml carries the project configuration; this script only adds a
build_py step that writes svidhelper/_build_info.py into the build directory
so `svid-helper --version` can report the commit it was built from.
"""

import subprocess
import sys
from datetime import UTC, datetime
from pathlib import Path

from setuptools import setup
from setuptools.command.build_py import build_py

_BUILD_INFO_TEMPLATE = '''\
"""Build information - auto-generated during install, do not edit."""

COMMIT_SHORT = "{commit_short}"
BUILD_TIME = "{build_time}"
MODIFIED = {modified}
'''


def _run_git(*args: str) -> str | None:
    """Run git command and return stdout, or None on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            capture_output=True,
            text=True,
            timeout=5,
            cwd=Path(__file__).parent,
        )
        return result.stdout.strip() if result.returncode == 0 else None
    except (subprocess.SubprocessError, FileNotFoundError, OSError):
        return None


def _generate_build_info(package_dir: Path) -> bool:
    """Write _build_info.py into package_dir; False when git is unavailable."""
    commit = _run_git("rev-parse", "--short", "HEAD")
    if not commit:
        print(
            "svid-helper: git info not available, skipping _build_info.py",
            file=sys.stderr,
        )
        return False

    status = _run_git("status", "--porcelain")
    content = _BUILD_INFO_TEMPLATE.format(
        commit_short=commit,
        build_time=datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ"),
        modified=bool(status),
    )
    (package_dir / "_build_info.py").write_text(content)
    print(f"svid-helper: generated _build_info.py ({commit})", file=sys.stderr)
    return True


class BuildPyWithBuildInfo(build_py):
    """build_py that also generates _build_info.py in the build directory."""

    def run(self):
        super().run()

        # Written to build_lib only, the source tree stays untouched
        if self.build_lib:
            build_package_dir = Path(self.build_lib) / "svidhelper"
            if build_package_dir.is_dir():
                _generate_build_info(build_package_dir)


setup(cmdclass={"build_py": BuildPyWithBuildInfo})
