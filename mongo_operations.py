import os
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional
from dotenv import load_dotenv
from pymongo import MongoClient

# Load environment variables
load_dotenv()

# MongoDB connection defaults
DEFAULT_MONGO_URI = "mongodb://localhost:27017"
DEFAULT_OUTPUT_DIR = "output"
# System databases that never hold application data
DEFAULT_EXCLUDED_DATABASES = frozenset({"admin", "local", "config"})
DEFAULT_PROGRESS_INTERVAL = 500


@dataclass(frozen=True)
class ExportConfig:
    """Settings for one export run"""
    source_uri: str = DEFAULT_MONGO_URI
    output_dir: str = DEFAULT_OUTPUT_DIR
    excluded_databases: FrozenSet[str] = DEFAULT_EXCLUDED_DATABASES
    progress_interval: int = DEFAULT_PROGRESS_INTERVAL


def parse_name_list(value: Optional[str]) -> FrozenSet[str]:
    """Splits a comma-separated list of names, ignoring blanks"""
    if not value:
        return frozenset()
    return frozenset(name.strip() for name in value.split(",") if name.strip())


def load_config(
    source_uri: Optional[str] = None,
    output_dir: Optional[str] = None,
    excluded_databases: Optional[Iterable[str]] = None,
    progress_interval: Optional[int] = None,
) -> ExportConfig:
    """
    Build an ExportConfig from explicit values, falling back to the environment.

    Args:
        source_uri (str): MongoDB connection URI. Env: MONGODB_URI
        output_dir (str): Destination directory. Env: EXPORT_OUTPUT_DIR
        excluded_databases (Iterable[str]): Databases to skip. Env: EXCLUDED_DATABASES (comma-separated)
        progress_interval (int): Documents between progress updates
    """
    if excluded_databases is None:
        env_excluded = os.getenv("EXCLUDED_DATABASES")
        excluded = parse_name_list(env_excluded) if env_excluded is not None else DEFAULT_EXCLUDED_DATABASES
    else:
        excluded = frozenset(excluded_databases)

    interval = progress_interval if progress_interval is not None else DEFAULT_PROGRESS_INTERVAL
    if interval < 1:
        raise ValueError("progress_interval must be at least 1")

    return ExportConfig(
        source_uri=source_uri or os.getenv("MONGODB_URI", DEFAULT_MONGO_URI),
        output_dir=output_dir or os.getenv("EXPORT_OUTPUT_DIR", DEFAULT_OUTPUT_DIR),
        excluded_databases=excluded,
        progress_interval=interval,
    )


def get_mongo_client(config: ExportConfig) -> MongoClient:
    """Get a MongoDB client for the configured URI"""
    return MongoClient(config.source_uri)


def list_export_databases(client: MongoClient, excluded_databases: Iterable[str]) -> List[str]:
    """Database names in server order, without the excluded ones"""
    excluded = set(excluded_databases)
    return [name for name in client.list_database_names() if name not in excluded]
