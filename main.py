#!/usr/bin/env python3
"""
Main entry point for the gap-filling evaluation.
Runs the experiment on the bundled sample network.
"""

import logging
from pathlib import Path

from gapfill import build_network, load_config, results_to_frame, run_network
from gapfill.utils.data_saver import DataSaver, summarize

DATA_DIR = Path(__file__).resolve().parent / "gapfill" / "data"


def main():
    """Run the sample experiment and save the results."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("Gap-filling evaluation")
    print("=" * 60)

    config = load_config(DATA_DIR / "experiment.yml")
    network = build_network(DATA_DIR / "network_topology.json")
    print(f"Network: {network.get_topology_info()}")

    results = run_network(network, config)
    results_df = results_to_frame(results, network, config.export_attrs, config.errors)

    saver = DataSaver("output")
    saver.save_to_csv(results_df, "results.csv")
    summary = summarize(results_df)
    saver.save_report(summary.to_string(index=False), "summary.txt")

    print(summary.to_string(index=False))
    print("\nEvaluation complete! Check the 'output' directory for results.")


if __name__ == "__main__":
    main()
