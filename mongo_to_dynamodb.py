"""
Exports every MongoDB collection to newline-delimited DynamoDB-style JSON.

Usage:
    python mongo_to_dynamodb.py [--uri <uri>] [--output-dir <dir>] [--exclude <db>]... [--progress-interval <n>]

Arguments:
    --uri:               Optional. MongoDB connection URI. Overrides MONGODB_URI.
    --output-dir:        Optional. Directory the files are written to. Overrides EXPORT_OUTPUT_DIR.
    --exclude:           Optional, repeatable. Database to skip. When given, replaces the
                         default exclusions (admin, local, config).
    --progress-interval: Optional. Documents between progress updates. Default: 500.

Environment Variables:
    MONGODB_URI: MongoDB connection URI. Defaults to "mongodb://localhost:27017".
    EXPORT_OUTPUT_DIR: Output directory. Defaults to "output".
    EXCLUDED_DATABASES: Comma-separated databases to skip. Defaults to "admin,local,config".

Output:
    - One <databaseName>_<collectionName>.json file per collection, one line per document:
        {"Item":{"name":{"S":"Ann"},"age":{"N":"30"}}}
      The _id field is left out.
"""
import os
import sys
import json
import argparse
from typing import List, Optional, Tuple
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError

from dynamo_formatter import format_document, validate_document
from mongo_operations import (
    DEFAULT_PROGRESS_INTERVAL,
    ExportConfig,
    get_mongo_client,
    list_export_databases,
    load_config,
)


def positive_int(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return number


def setup_arg_parser():
    """Sets up the argument parser for command-line options."""
    parser = argparse.ArgumentParser(
        description="Export all MongoDB collections as DynamoDB-style JSON lines.",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("--uri", type=str, help="MongoDB connection URI (default: $MONGODB_URI).")
    parser.add_argument("--output-dir", type=str, help="Directory for the exported files (default: $EXPORT_OUTPUT_DIR or 'output').")
    parser.add_argument(
        "--exclude",
        action="append",
        metavar="DATABASE",
        help="Database to skip. Can be given several times.\nReplaces the default exclusions (admin, local, config)."
    )
    parser.add_argument(
        "--progress-interval",
        type=positive_int,
        default=DEFAULT_PROGRESS_INTERVAL,
        help=f"Documents between progress updates. Defaults to {DEFAULT_PROGRESS_INTERVAL}."
    )
    return parser


def export_collection(database: Database, collection_name: str, output_dir: str,
                      progress_interval: int = DEFAULT_PROGRESS_INTERVAL) -> Tuple[str, int]:
    """
    Streams one collection into <database>_<collection>.json, one formatted document per line.

    Returns:
        Tuple[str, int]: Output path and number of documents written
    """
    print(f"Processing collection: {collection_name}")
    collection = database[collection_name]
    output_path = os.path.join(output_dir, f"{database.name}_{collection_name}.json")

    counter = 0
    print("Documents processed: 0", end="", flush=True)
    with open(output_path, "w", encoding="utf-8") as f:
        for doc in collection.find({}):
            formatted_doc = validate_document(format_document(doc))
            f.write(json.dumps(formatted_doc, ensure_ascii=False, separators=(",", ":")) + "\n")
            counter += 1

            if counter % progress_interval == 0:
                print(f"\rDocuments processed: {counter}", end="", flush=True)

    print()
    print(f"Collection {collection_name} exported to {output_path}. Total documents: {counter}")
    return output_path, counter


def export_all_databases(config: ExportConfig, client: Optional[MongoClient] = None) -> List[Tuple[str, int]]:
    """
    Exports every collection of every non-excluded database.

    Args:
        config (ExportConfig): Connection, output and exclusion settings
        client (MongoClient, optional): Client to use. If None, one is created from
            config.source_uri and closed when the export ends.

    Returns:
        List[Tuple[str, int]]: (output path, document count) per exported collection
    """
    owns_client = client is None
    if owns_client:
        print("Attempting to connect to MongoDB...")
        client = get_mongo_client(config)

    results = []
    try:
        if owns_client:
            client.server_info()
            print("Connection established successfully")

        os.makedirs(config.output_dir, exist_ok=True)
        print(f"Output folder created at: {os.path.abspath(config.output_dir)}")

        for db_name in list_export_databases(client, config.excluded_databases):
            print(f"Processing database: {db_name}")
            database = client[db_name]
            for coll_name in database.list_collection_names():
                results.append(
                    export_collection(database, coll_name, config.output_dir, config.progress_interval)
                )

        print("Export completed successfully")
    finally:
        if owns_client:
            client.close()
            print("Connection closed")
    return results


def main(argv=None) -> int:
    parser = setup_arg_parser()
    args = parser.parse_args(argv)

    config = load_config(
        source_uri=args.uri,
        output_dir=args.output_dir,
        excluded_databases=args.exclude,
        progress_interval=args.progress_interval,
    )

    try:
        export_all_databases(config)
    except (PyMongoError, OSError) as e:
        print(f"Error during export: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
