"""Allow running as python -m check_x509."""

from check_x509.cli import app

if __name__ == "__main__":
    app(prog_name="check_x509")
