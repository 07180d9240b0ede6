"""Gold dashboard data update entry point.

Usage:
    python run_pipeline.py

Loads .env and config.yaml, runs PipelineEngine once, and reports per-source
success/failure to stdout and the pipeline log. Exits 1 only when every
source failed (or the configuration could not be loaded), so the scheduler
flags the run.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()  # must precede goldwatch imports so GOLDWATCH_LOG_FILE is honoured

from goldwatch.core.config import Credentials, load_config  # noqa: E402
from goldwatch.core.logger import logger  # noqa: E402
from goldwatch.pipeline.engine import PipelineEngine  # noqa: E402


def main() -> int:
    """Run the pipeline. Returns 0 if at least one source updated, else 1."""
    try:
        config = load_config(os.getenv("GOLDWATCH_CONFIG", "config.yaml"))
    except (FileNotFoundError, ValueError) as exc:
        logger.error(f"run_pipeline: failed to load config: {exc}")
        print(f"ERROR: {exc}", file=sys.stderr)
        return 1

    credentials = Credentials.from_env(os.environ)
    engine = PipelineEngine(config=config, credentials=credentials)
    outcome = engine.run()

    print("=" * 43)
    print("UPDATE SUMMARY")
    print("=" * 43)
    for line in outcome.summary_lines():
        print(line)

    if not outcome.overall_success:
        print("\nERROR: all updates failed — check API keys and rate limits", file=sys.stderr)
    return outcome.exit_code


if __name__ == "__main__":
    sys.exit(main())
