"""
Real data loading and preprocessing functionality

Data loader for the Tennessee Valley Authority county panel
(county x census year, agriculture and manufacturing employment shares).
"""

import os
import pandas as pd
from typing import Dict, Any, List, Optional

from .config import Config


class TVADataLoader:
    """Class for loading and preprocessing the TVA county panel"""

    def __init__(self, data_path: str, config: Optional[Config] = None):
        if config is None:
            config = Config()
        self.data_path = data_path
        self.config = config
        self.data: Optional[pd.DataFrame] = None

    def _required_columns(self) -> List[str]:
        config = self.config
        columns = [config.county_column, config.year_column, config.treatment_column]
        columns += list(config.outcome_columns) + list(config.covariate_columns)
        if config.flag_column is not None:
            columns.append(config.flag_column)
        if config.cluster_column not in columns:
            columns.append(config.cluster_column)
        return columns

    def load_data(self) -> pd.DataFrame:
        """Load the raw panel (.csv or Stata .dta)

        Raises:
            ValueError: If the file extension is not supported
            KeyError: If required columns are missing
        """
        if self.config.verbose:
            print(f"Loading TVA panel from {self.data_path}...")

        extension = os.path.splitext(self.data_path)[1].lower()
        if extension == ".csv":
            df = pd.read_csv(self.data_path)
        elif extension == ".dta":
            df = pd.read_stata(self.data_path)
        else:
            raise ValueError(
                f"Unsupported file type '{extension}'. Expected .csv or .dta"
            )

        missing = [col for col in self._required_columns() if col not in df.columns]
        if missing:
            raise KeyError(f"Panel is missing required columns: {missing}")

        self.data = df
        if self.config.verbose:
            print("✓ TVA panel loading completed")
        return df

    def prepare_analysis_data(self) -> pd.DataFrame:
        """Apply the data-quality flag and normalize column types

        Returns:
            New dataframe restricted to rows flagged as having all covariates
        """
        if self.data is None:
            self.load_data()

        config = self.config
        df = self.data.copy()

        if config.flag_column is not None:
            flag = df[config.flag_column].fillna(False).astype(bool)
            n_flagged = int((~flag).sum())
            df = df[flag].copy()
            if config.verbose:
                print(f"Dropped {n_flagged} rows flagged as missing covariates")

        df[config.treatment_column] = df[config.treatment_column].astype(int)
        df[config.year_column] = df[config.year_column].astype(int)
        df = df.sort_values([config.county_column, config.year_column]).reset_index(
            drop=True
        )

        if config.verbose:
            print(f"Data shape: {df.shape}")
            print(f"Years: {sorted(df[config.year_column].unique())}")
            print(f"Number of counties: {df[config.county_column].nunique()}")
            print(
                "Number of TVA counties: "
                f"{df.loc[df[config.treatment_column] == 1, config.county_column].nunique()}"
            )

        return df

    def get_data_summary(self) -> Dict[str, Any]:
        """Get data summary"""
        if self.data is None:
            self.load_data()

        config = self.config
        df = self.data
        counties_per_year = df.groupby(config.year_column)[config.county_column].nunique()
        return {
            "shape": df.shape,
            "columns": list(df.columns),
            "years": sorted(df[config.year_column].unique()),
            "counties": df[config.county_column].nunique(),
            "treated_counties": df.loc[
                df[config.treatment_column] == 1, config.county_column
            ].nunique(),
            "counties_per_year": counties_per_year.to_dict(),
            "missing_covariate_rows": int(
                df[list(config.covariate_columns)].isna().any(axis=1).sum()
            ),
        }


def load_tva_data(data_path: str, config: Optional[Config] = None) -> TVADataLoader:
    """Create TVA data loader instance and load data"""
    loader = TVADataLoader(data_path, config)
    loader.load_data()
    return loader
