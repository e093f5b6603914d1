#!/usr/bin/env python3
"""
Stage Cloud Functions for deployment.

Each function imports the shared `boxoffice` package, which lives at the repo
root and is not part of cloud_functions/<name>/. Staging copies the
function's directory into build/<name>/ together with a copy of the package
and a requirements.txt built from pyproject.toml, so that directory can be
deployed on its own:

    python scripts/stage_functions.py
    gcloud functions deploy pdf-webhook --gen2 --runtime=python312 \\
        --source=build/pdf_webhook --entry-point=pdf_webhook --trigger-http

Usage:
    python scripts/stage_functions.py                  # every function
    python scripts/stage_functions.py pdf_webhook_ptc  # just one
    python scripts/stage_functions.py --out /tmp/build
"""

import argparse
import shutil
import sys
import tomllib
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
PACKAGE_NAME = 'boxoffice'
IGNORED = shutil.ignore_patterns('__pycache__', '*.pyc', '.pytest_cache')


def project_requirements(repo_root: Path = REPO_ROOT) -> list[str]:
    with open(repo_root / 'pyproject.toml', 'rb') as f:
        pyproject = tomllib.load(f)
    return list(pyproject['project']['dependencies'])


def list_functions(repo_root: Path = REPO_ROOT) -> list[str]:
    functions_dir = repo_root / 'cloud_functions'
    return sorted(p.name for p in functions_dir.iterdir() if (p / 'main.py').is_file())


def stage_function(name: str, out_dir: Path, repo_root: Path = REPO_ROOT) -> Path:
    """
    Build a self-contained source directory for one function.

    Returns:
        Path of the staged directory (out_dir/name); any previous copy is replaced
    """
    source = repo_root / 'cloud_functions' / name
    if not (source / 'main.py').is_file():
        raise FileNotFoundError(f"No cloud function named {name!r} (missing {source / 'main.py'})")

    target = out_dir / name
    if target.exists():
        shutil.rmtree(target)

    shutil.copytree(source, target, ignore=IGNORED)
    shutil.copytree(repo_root / PACKAGE_NAME, target / PACKAGE_NAME, ignore=IGNORED)

    requirements = project_requirements(repo_root)
    (target / 'requirements.txt').write_text('\n'.join(requirements) + '\n')
    return target


def main():
    parser = argparse.ArgumentParser(description="Stage Cloud Functions with the boxoffice package")
    parser.add_argument("functions", nargs="*", help="Function directories to stage (default: all)")
    parser.add_argument("--out", default=str(REPO_ROOT / 'build'), help="Output directory")

    args = parser.parse_args()
    out_dir = Path(args.out)
    names = args.functions or list_functions()

    for name in names:
        try:
            target = stage_function(name, out_dir)
        except FileNotFoundError as e:
            print(f"Error: {e}")
            sys.exit(1)
        print(f"Staged {name} -> {target}")


if __name__ == "__main__":
    main()
