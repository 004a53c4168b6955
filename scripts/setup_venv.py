#!/usr/bin/env python3
"""
One-time local environment bootstrap.

Creates ./venv, upgrades pip and installs the gateway in editable mode
with its test extra. Must NOT be run inside an active virtual environment.

    python scripts/setup_venv.py
"""
import os
import sys
import subprocess
import platform
from pathlib import Path

# ===============================
# CONFIG
# ===============================
VENV_DIR = "venv"
REQUIREMENTS_FILE = Path("requirements") / "requirements.txt"
MIN_VERSION = (3, 9)

# ===============================
# HELPERS
# ===============================
def run(cmd):
    print(f"▶ {' '.join(str(c) for c in cmd)}")
    subprocess.check_call(cmd)

def python_version_ok():
    return sys.version_info[:2] >= MIN_VERSION

def is_windows():
    return platform.system().lower() == "windows"

# ===============================
# MAIN
# ===============================
def main():
    project_dir = Path(__file__).resolve().parents[1]
    os.chdir(project_dir)

    print(f"📂 Project directory: {project_dir}")

    if os.environ.get("VIRTUAL_ENV"):
        print("❌ Do not run setup_venv.py inside an active virtual environment")
        sys.exit(1)

    if not python_version_ok():
        print("❌ Unsupported Python version!")
        print(f"👉 Detected: {sys.version.split()[0]}")
        print(f"👉 Required: Python {MIN_VERSION[0]}.{MIN_VERSION[1]}+")
        sys.exit(1)

    print(f"🐍 Python version OK: {sys.version.split()[0]}")

    if not Path(VENV_DIR).exists():
        print("🐍 Creating virtual environment...")
        run([sys.executable, "-m", "venv", VENV_DIR])
    else:
        print("ℹ️ Virtual environment already exists")

    if is_windows():
        pip = Path(VENV_DIR) / "Scripts" / "pip.exe"
        activate_hint = f"{VENV_DIR}\\Scripts\\Activate.ps1"
    else:
        pip = Path(VENV_DIR) / "bin" / "pip"
        activate_hint = f"source {VENV_DIR}/bin/activate"

    print("⬆️ Upgrading pip...")
    run([str(pip), "install", "--upgrade", "pip", "setuptools", "wheel"])

    if not REQUIREMENTS_FILE.exists():
        print(f"❌ Missing {REQUIREMENTS_FILE}")
        sys.exit(1)

    print("📥 Installing dependencies...")
    run([str(pip), "install", "-r", str(REQUIREMENTS_FILE)])
    run([str(pip), "install", "-e", ".[test]"])

    env_file = Path("config_env") / "primary.env"
    if not env_file.exists():
        print(f"ℹ️ Create {env_file} from config_env/primary.env.example before starting")

    print("\n✅ Setup complete!")
    print(f"👉 Activate environment with:\n   {activate_hint}")

if __name__ == "__main__":
    main()
