import numpy as np
import pandas as pd
from sklearn.metrics import mean_squared_error, mean_absolute_error, r2_score

from .exceptions import ShapeMismatchError


def forecast_metrics(predictions: np.ndarray, targets: np.ndarray) -> pd.DataFrame:
    """
    Computes forecasting performance metrics. Works equally on the fitted outputs returned by training (for residual
    inspection) and on forecasts.

    :param predictions: Forecasted output with shape (No, T).
    :param targets: Ground truth targets with shape (No, T).

    :return: Pandas DataFrame containing the forecasting metrics.
    """

    if predictions.shape != targets.shape:
        raise ShapeMismatchError(f"Predictions have shape {predictions.shape}, targets have shape {targets.shape}.")

    # scikit-learn expects (samples, outputs).
    y_true = np.atleast_2d(targets).T
    y_pred = np.atleast_2d(predictions).T

    rmse = np.sqrt(mean_squared_error(y_true, y_pred))  # Overall error.
    mae = mean_absolute_error(y_true, y_pred)  # Depicts absolute deviation
    r2 = r2_score(y_true, y_pred)  # Goodness of fit.
    max_error = np.max(np.abs(y_true - y_pred))  # Worst case scenario.
    forecast_bias = np.mean(y_true - y_pred)  # General over/underestimation.

    return pd.DataFrame({
        "Metric": ["RMSE", "MAE", "R² Score", "Max Absolute Error", "Forecast Bias"],
        "Value": [rmse, mae, r2, max_error, forecast_bias]
    })
