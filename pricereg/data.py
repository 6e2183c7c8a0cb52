"""
Datasets of company-period observations.

A :class:`Dataset` is an immutable table of numeric predictor columns
(balance-sheet line items) plus one numeric response (closing stock price).
:func:`load_dataset` is the thin loader that turns a raw CSV export into a
Dataset, stripping identifier/date columns and cleaning the numbers.
"""

import logging
from collections import namedtuple
from types import MappingProxyType

import numpy as np
import pandas as pd

from . import config

log = logging.getLogger(__name__)


Observation = namedtuple('Observation', ['values', 'response'])
Observation.__doc__ = """\
One company-period record.

values : Mapping[str, float]
    Predictor name -> value (NaN marks a missing value).
response : float
    Closing stock price.
"""


class Dataset:
    """
    Ordered, immutable collection of observations sharing one schema.

    Parameters
    ----------
    frame : pd.DataFrame
        Must contain ``response`` and every name in ``predictors``.
        A private copy is taken.
    response : str
        Name of the response column.
    predictors : sequence of str, optional
        Predictor columns, in order.  Defaults to every other column.
    """

    def __init__(self, frame, response, predictors=None):
        if not isinstance(frame, pd.DataFrame):
            frame = pd.DataFrame(frame)
        if response not in frame.columns:
            raise ValueError(f"Response column '{response}' not in data")
        if predictors is None:
            predictors = [c for c in frame.columns if c != response]
        predictors = tuple(predictors)

        missing = [p for p in predictors if p not in frame.columns]
        if missing:
            raise ValueError(f"Unknown predictor column(s): {missing}")
        if response in predictors:
            raise ValueError("The response cannot also be a predictor")
        if len(set(predictors)) != len(predictors):
            raise ValueError("Duplicate predictor names")

        cols = list(predictors) + [response]
        data = frame.loc[:, cols].reset_index(drop=True)
        non_numeric = [
            c for c in cols if not pd.api.types.is_numeric_dtype(data[c])
        ]
        if non_numeric:
            raise ValueError(f"Non-numeric column(s): {non_numeric}")

        self._frame = data.astype(np.float64)
        self._response = response
        self._predictors = predictors

    # ---- read-only views -------------------------------------------------

    @property
    def response(self):
        return self._response

    @property
    def predictors(self):
        return self._predictors

    @property
    def n_obs(self):
        return len(self._frame)

    @property
    def frame(self):
        """Copy of the underlying table (predictors then response)."""
        return self._frame.copy()

    def column(self, name):
        """Copy of one column as a float array."""
        return self._frame[name].to_numpy(dtype=np.float64, copy=True)

    def __len__(self):
        return len(self._frame)

    def __iter__(self):
        preds = list(self._predictors)
        for _, row in self._frame.iterrows():
            yield Observation(
                MappingProxyType({p: float(row[p]) for p in preds}),
                float(row[self._response]),
            )

    def __repr__(self):
        return (f"Dataset(n_obs={self.n_obs}, response={self._response!r}, "
                f"predictors={list(self._predictors)})")

    # ---- derivation ------------------------------------------------------

    def with_response(self, values, name=None):
        """
        Return a new Dataset whose response is replaced by ``values``.

        The original dataset is left untouched.
        """
        values = np.asarray(values, dtype=np.float64).ravel()
        if len(values) != self.n_obs:
            raise ValueError(
                f"Expected {self.n_obs} response values, got {len(values)}"
            )
        name = name or self._response
        frame = self._frame.drop(columns=[self._response])
        frame[name] = values
        return Dataset(frame, name, self._predictors)


# ---------------------------------------------------------------------------
# Loading / cleaning
# ---------------------------------------------------------------------------

def load_dataset(source, response=config.RESPONSE_COLUMN,
                 drop_columns=config.ID_COLUMNS, **read_csv_kwargs):
    """
    Load and clean a balance-sheet table into a :class:`Dataset`.

    Cleaning steps
    --------------
    1.  Drop identifier / date columns (``drop_columns``, case-insensitive).
    2.  Drop remaining non-numeric columns.
    3.  Drop rows where the response is missing or infinite.
    4.  Drop predictor columns that are entirely NaN or have zero variance.
    5.  Replace infinities in predictors with the column max/min.
    6.  Impute remaining NaN predictor values with column medians.

    Every cleaning action is logged at INFO level.

    Parameters
    ----------
    source : str, path-like or pd.DataFrame
        CSV path, or an already-loaded frame.
    response : str
        Response column (closing stock price).
    drop_columns : iterable of str
        Identifier / date column names to strip.
    **read_csv_kwargs
        Passed to :func:`pandas.read_csv`.

    Returns
    -------
    Dataset
    """
    if isinstance(source, pd.DataFrame):
        df = source.copy()
    else:
        df = pd.read_csv(source, **read_csv_kwargs)
        log.info("Read %d row(s) x %d column(s) from %s",
                 df.shape[0], df.shape[1], source)

    if response not in df.columns:
        raise ValueError(f"Response column '{response}' not found")

    # --- Identifier / date columns ---------------------------------------
    lowered = {str(c).lower() for c in drop_columns}
    id_cols = [c for c in df.columns
               if c != response and str(c).lower() in lowered]
    if id_cols:
        log.info("Dropped identifier/date column(s): %s", id_cols)
        df = df.drop(columns=id_cols)

    # --- Non-numeric columns ---------------------------------------------
    df[response] = pd.to_numeric(df[response], errors='coerce')
    non_numeric = df.select_dtypes(exclude=[np.number]).columns.tolist()
    if non_numeric:
        log.info("Dropped %d non-numeric column(s): %s",
                 len(non_numeric), non_numeric)
        df = df.drop(columns=non_numeric)

    # --- Rows with unusable response -------------------------------------
    bad_y = ~np.isfinite(df[response].to_numpy(dtype=np.float64))
    if bad_y.any():
        log.info("Dropped %d row(s) with a missing or infinite response",
                 int(bad_y.sum()))
        df = df.loc[~bad_y].reset_index(drop=True)

    X = df.drop(columns=[response])

    # --- All-NaN columns ---------------------------------------------------
    all_nan = X.columns[X.isna().all()].tolist()
    if all_nan:
        log.info("Dropped %d all-NaN column(s): %s", len(all_nan), all_nan)
        X = X.drop(columns=all_nan)

    # --- Infinities ------------------------------------------------------
    inf_mask = np.isinf(X.to_numpy(dtype=np.float64))
    if inf_mask.any():
        log.info("Replaced %d infinite predictor value(s) with column "
                 "max/min", int(inf_mask.sum()))
        for col in X.columns:
            finite_vals = X[col][np.isfinite(X[col])]
            if len(finite_vals) == 0:
                X[col] = np.nan
            else:
                X[col] = X[col].replace(
                    [np.inf], finite_vals.max()
                ).replace([-np.inf], finite_vals.min())

    # --- Median imputation -----------------------------------------------
    nan_counts = X.isna().sum()
    cols_with_nan = nan_counts[nan_counts > 0]
    if len(cols_with_nan) > 0:
        details = ", ".join(f"{c}({n})" for c, n in cols_with_nan.items())
        log.info("Imputed NaN with column medians in %d column(s): %s",
                 len(cols_with_nan), details)
        X = X.fillna(X.median())

    # --- Zero-variance columns -------------------------------------------
    zero_var = X.columns[(X.std() == 0) | X.isna().all()].tolist()
    if zero_var:
        log.info("Dropped %d zero-variance column(s): %s",
                 len(zero_var), zero_var)
        X = X.drop(columns=zero_var)

    if X.shape[1] == 0:
        raise ValueError("No predictor columns remain after cleaning.")

    X[response] = df[response].to_numpy(dtype=np.float64)
    dataset = Dataset(X, response)
    log.info("Final dataset: n=%d, p=%d", dataset.n_obs,
             len(dataset.predictors))
    return dataset
