import uvicorn

from .config import get_config
from .logger import setup_logging


def main():
    config = get_config()
    setup_logging()
    uvicorn.run("recipe_share.app:app", host=config.host, port=config.port)


if __name__ == "__main__":
    main()
