"""
Browser setup for the accessibility checker.

Downloads the Chromium build Playwright drives. Run once after installing
the package:

    a11y-audit-setup
"""
import subprocess
import sys

from a11y_audit.constants import EXIT_FAILURE, EXIT_OK

MANUAL_INSTALL_HINT = (
    "Please run the following command manually:\n"
    "  python -m playwright install chromium"
)


def install_chromium() -> int:
    """
    Run ``playwright install chromium`` with the current interpreter.

    Returns:
        Process exit code
    """
    print("Running 'playwright install chromium'...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "playwright", "install", "chromium"],
            check=True,
            capture_output=True,
            text=True
        )
    except subprocess.CalledProcessError as e:
        print(f"Error installing Chromium browser for Playwright: {e}", file=sys.stderr)
        if e.stderr:
            print(e.stderr, file=sys.stderr)
        print(MANUAL_INSTALL_HINT, file=sys.stderr)
        return EXIT_FAILURE
    except FileNotFoundError as e:
        print(f"Error: Could not find Python executable: {e}", file=sys.stderr)
        print(MANUAL_INSTALL_HINT, file=sys.stderr)
        return EXIT_FAILURE

    if result.stdout:
        print(result.stdout)
    print("Chromium browser installed successfully.")
    return EXIT_OK


def main() -> int:
    return install_chromium()


if __name__ == "__main__":
    sys.exit(main())
