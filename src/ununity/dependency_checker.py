import sys
from dataclasses import asdict, dataclass
from importlib.metadata import PackageNotFoundError, version
from typing import Optional


@dataclass
class DependencyVersions:
    """Versions of the dependencies used by ununity."""

    python_version: Optional[str] = None
    tqdm_version: Optional[str] = None
    rapidgzip_version: Optional[str] = None
    backports_strenum_version: Optional[str] = None


def get_dependency_versions() -> DependencyVersions:
    """Get versions of all dependencies.

    Returns:
        DependencyVersions: Version of each dependency, or None if not installed.
    """
    versions = DependencyVersions()

    versions.python_version = (
        f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
    )

    for package, attr in [
        ("tqdm", "tqdm_version"),
        ("rapidgzip", "rapidgzip_version"),
        ("backports.strenum", "backports_strenum_version"),
    ]:
        try:
            setattr(versions, attr, version(package))
        except PackageNotFoundError:
            pass

    return versions


def format_dependency_versions(versions: DependencyVersions) -> str:
    """Format dependency versions as a string.

    Args:
        versions: The DependencyVersions instance to format

    Returns:
        str: One line per dependency, under a heading
    """
    lines = ["Dependency Versions:"]
    for key, value in asdict(versions).items():
        lines.append(f"  {key}: {value if value is not None else 'not installed'}")
    return "\n".join(lines)


if __name__ == "__main__":
    print(format_dependency_versions(get_dependency_versions()))
