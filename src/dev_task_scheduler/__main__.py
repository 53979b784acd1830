"""Entry point when run as a module: python -m dev_task_scheduler."""

from .cli.main import run

if __name__ == "__main__":
    run()
