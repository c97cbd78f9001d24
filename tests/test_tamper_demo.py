from __future__ import annotations

import importlib.util
from pathlib import Path


def _load_demo_module():
    module_path = Path(__file__).resolve().parents[1] / "examples" / "tamper-demo" / "demo.py"
    spec = importlib.util.spec_from_file_location("tamper_demo", module_path)
    if spec is None or spec.loader is None:
        raise RuntimeError("failed to load tamper demo module")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_tamper_demo_detects_rewrite(tmp_path: Path) -> None:
    module = _load_demo_module()
    workdir = tmp_path / "tamper"
    result = module.run_demo(workdir)
    assert result == 0
    assert (workdir / "proof_bundle.json").exists()


def test_tamper_demo_reruns_in_same_workdir(tmp_path: Path) -> None:
    module = _load_demo_module()
    workdir = tmp_path / "tamper"
    assert module.run_demo(workdir) == 0
    assert module.run_demo(workdir) == 0
