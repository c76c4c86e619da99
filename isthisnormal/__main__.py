import os

import uvicorn


def main() -> None:
    host = os.getenv("HOST", "127.0.0.1")
    try:
        port = int(os.getenv("PORT", "8000"))
    except ValueError:
        port = 8000
    uvicorn.run("isthisnormal.app:app", host=host, port=port)


if __name__ == "__main__":
    main()
