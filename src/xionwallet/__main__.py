"""Entry point for running the service as module: python -m xionwallet"""

# Load .env file before importing anything else
from dotenv import load_dotenv
load_dotenv()

from xionwallet.main import main

if __name__ == "__main__":
    main()
