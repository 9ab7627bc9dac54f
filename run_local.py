#!/usr/bin/env python
import os
import sys
import subprocess

# --- Configuration ---
VENV_DIR = 'venv'
PROJECT_FILE = 'pyproject.toml'
LOCAL_APPS = ['authentication', 'third_party', 'procurement', 'inventory', 'quality', 'sales']

# --- Platform-specific setup ---
if os.name == 'nt':  # 'nt' is the name for Windows
    venv_python = os.path.join(VENV_DIR, 'Scripts', 'python.exe')
    create_venv_cmd = f"python -m venv {VENV_DIR}"
else:  # 'posix' is the name for macOS/Linux
    venv_python = os.path.join(VENV_DIR, 'bin', 'python')
    create_venv_cmd = f"python3 -m venv {VENV_DIR}"


def run_command(command_list, error_msg="Command failed"):
    """Runs a command and handles errors."""
    print(f"\nRunning: {' '.join(command_list)}")
    try:
        # DJANGO_SETTINGS_MODULE is passed through to the subprocess
        subprocess.run(command_list, check=True, env=os.environ)
    except subprocess.CalledProcessError as e:
        print(f"❌ {error_msg}: {e}")
        sys.exit(1)
    except FileNotFoundError:
        print(f"❌ Error: Command not found: '{command_list[0]}'.")
        if 'manage.py' in command_list:
            print("Make sure you are in the correct project root directory.")
        elif 'python' in command_list[0]:
            print("Make sure Python is installed and in your system's PATH.")
        sys.exit(1)


print("Starting ERP operations Django application locally...")

if not os.path.exists(PROJECT_FILE):
    print(f"❌ Error: '{PROJECT_FILE}' not found.")
    print("Run this script from the project root.")
    sys.exit(1)

if not os.path.exists(venv_python):
    print("⚠️ Virtual environment not found. Creating one...")
    run_command(create_venv_cmd.split(), "Failed to create virtual environment")
    print(f"✅ Created virtual environment at: {VENV_DIR}")

    print("Installing the project and its dependencies...")
    run_command([venv_python, '-m', 'pip', 'install', '-e', '.'], "Failed to install dependencies")
    print("✅ Dependencies installed")
else:
    print("✅ Found existing virtual environment.")
    print("Skipping dependency installation.")

print(f"✅ Using Python from: {venv_python}")

try:
    os.makedirs("./logs", exist_ok=True)
    print("✅ Created logs directory")

    os.environ['DJANGO_SETTINGS_MODULE'] = 'erp_operations.settings'
    print("✅ Set DJANGO_SETTINGS_MODULE")

    # Apps ship without migration packages; generate them for every local app
    print("Running database migrations...")
    run_command([venv_python, 'manage.py', 'makemigrations', *LOCAL_APPS], "Migrations check failed")
    run_command([venv_python, 'manage.py', 'migrate', '--noinput'], "Migration failed")
    run_command([venv_python, 'manage.py', 'seed_warehouses'], "Warehouse seeding failed")

    print("🚀 Starting Django development server...")
    print("Access the application at: http://localhost:8000")
    print("Admin panel at: http://localhost:8000/admin")
    print("\nPress Ctrl+C to stop the server")

    run_command([venv_python, 'manage.py', 'runserver', '0.0.0.0:8000'], "Failed to start server")

except KeyboardInterrupt:
    print("\n\nStopping server...")
    sys.exit(0)
