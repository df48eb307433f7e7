# -*- coding: utf-8 -*-
"""
Handles writing experiment results and per-trial debug tables.
"""
import logging
import os

import pandas as pd

logger = logging.getLogger(__name__)


class DataSaver:
    """
    Saves experiment data to files in one output directory.
    Also usable as the debug sink of the experiment runner.
    """
    def __init__(self, output_dir):
        """
        Initializes the DataSaver.

        Args:
            output_dir (str): The directory files are written to.
        """
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)

    def save_to_csv(self, df, filename):
        """
        Saves a DataFrame to a CSV file.

        Args:
            df (pd.DataFrame): The table to save.
            filename (str): File name inside the output directory.

        Returns:
            str: The path written.
        """
        path = os.path.join(self.output_dir, filename)
        df.to_csv(path, index=False)
        logger.info(f"Data saved to {path}")
        return path

    def write_trial(self, node, trial, label, frame):
        """
        Saves the table of one trial and strategy, timestamps included.
        """
        path = os.path.join(self.output_dir, f"{node}_{trial:03d}_{label}.csv")
        frame.to_csv(path, index=True)
        logger.debug(f"Trial table saved to {path}")

    def save_report(self, report_content, filename):
        """
        Saves a text report to a file.

        Args:
            report_content (str): The content of the report.
            filename (str): File name inside the output directory.
        """
        path = os.path.join(self.output_dir, filename)
        with open(path, 'w', encoding="utf-8") as f:
            f.write(report_content)
        logger.info(f"Report saved to {path}")
        return path


def summarize(results_df: pd.DataFrame, group=("name", "method")) -> pd.DataFrame:
    """Mean of each error metric per node and method, ignoring non-finite scores."""
    group = [g for g in group if g in results_df.columns]
    metrics = [c for c in results_df.columns if c not in group and c != "experiment_index"]
    finite = results_df[metrics].apply(pd.to_numeric, errors="coerce")
    finite = finite.where(finite.abs() != float("inf"))
    return finite.join(results_df[group]).groupby(group, sort=False).mean().reset_index()
