"""SlotStudio entry point. Starts backend server."""
import os
import sys

HOST = "127.0.0.1"
PORT = 8500


def main():
    root = os.path.dirname(os.path.abspath(__file__))
    sys.path.insert(0, root)

    import uvicorn

    print("=" * 50)
    print("  SlotStudio v1.0")
    print(f"  API:      http://{HOST}:{PORT}/api/graph")
    print(f"  API Docs: http://{HOST}:{PORT}/docs")
    print("=" * 50)

    uvicorn.run("slotstudio.server:app", host=HOST, port=PORT, reload=True)


if __name__ == "__main__":
    main()
