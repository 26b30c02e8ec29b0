"""Serve the vault with uvicorn: ``python -m runvault`` or the ``runvault`` script."""
import uvicorn

from .config import HOST, PORT


def main():
    uvicorn.run("runvault.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    main()
