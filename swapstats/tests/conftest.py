import os
import pathlib

from dotenv import load_dotenv

# tests never touch a configured database
os.environ["DATABASE_URL"] = "sqlite://"

# Automatically load .env from project root
load_dotenv(dotenv_path=pathlib.Path(__file__).parent.parent.parent / ".env")
