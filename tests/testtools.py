" helpers shared by the tests "
import json
from pathlib import Path


def write_script(path: Path, body: str) -> Path:
    "Writes an executable shell script"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\n" + body)
    path.chmod(0o755)
    return path


def install_plugin(root: Path, name: str, body: str = "exit 0\n", **manifest) -> Path:
    "Installs plugin `name` in the store at `root`, returns its executable"
    data = {"name": name, "version": "0.1.0", **manifest}
    (root / "manifests").mkdir(parents=True, exist_ok=True)
    (root / "manifests" / f"{name}.json").write_text(json.dumps(data))
    return write_script(root / name / name, body)
