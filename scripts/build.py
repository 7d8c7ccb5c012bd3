"""
Build Script for the Event Creator contract

Compiles the Algorand Python contract to TEAL and an ARC-56 app spec with
puyapy. The output directory is what scripts/deploy.py reads from.
Run with: python scripts/build.py
"""

import os
import subprocess
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()


CONTRACT_NAME = "EventCreator"
CONTRACT_PATH = Path("contracts/event_creator/contract.py")


def build_command(contract_path: Path, out_dir: Path) -> list[str]:
    """puyapy invocation for a single contract file."""
    return ["puyapy", str(contract_path), "--out-dir", str(out_dir)]


def expected_artifacts(out_dir: Path) -> list[Path]:
    """Files the deploy script needs from a successful build."""
    return [
        out_dir / f"{CONTRACT_NAME}.approval.teal",
        out_dir / f"{CONTRACT_NAME}.clear.teal",
    ]


def main():
    out_dir = Path(os.getenv("BUILD_DIR", "build")).resolve()
    out_dir.mkdir(parents=True, exist_ok=True)

    print("=" * 60)
    print(f"Building {CONTRACT_NAME}")
    print("=" * 60)
    print(f"\nSource: {CONTRACT_PATH}")
    print(f"Output: {out_dir}")

    subprocess.run(build_command(CONTRACT_PATH, out_dir), check=True)

    missing = [path for path in expected_artifacts(out_dir) if not path.exists()]
    if missing:
        raise FileNotFoundError(f"Build finished but artifacts are missing: {missing}")

    print("\n✅ Build complete:")
    for path in sorted(out_dir.iterdir()):
        print(f"   {path.name}")


if __name__ == "__main__":
    main()
