import logging

import numpy as np
import pandas as pd
import pytest

from tidyprep.core.metadata import ColumnMetadata
from tidyprep.utils import logging_utils


@pytest.fixture
def customers():
    """Mixed nominal / numeric frame with missing nominal values and an outcome."""
    rng = np.random.RandomState(7)
    n = 60
    df = pd.DataFrame({
        'customer_id': [f'c{i:03d}' for i in range(n)],
        'plan': rng.choice(['basic', 'plus', 'pro'], size=n, p=[0.6, 0.3, 0.1]).astype(object),
        'region': rng.choice(['north', 'south'], size=n).astype(object),
        'tenure': rng.gamma(2.0, 12.0, size=n),
        'monthly_fee': rng.normal(40, 8, size=n),
        'usage_gb': rng.normal(120, 30, size=n),
        'support_calls': rng.poisson(2, size=n).astype(float),
        'churned': rng.choice(['yes', 'no'], size=n).astype(object),
    })
    df.loc[[3, 17, 42], 'plan'] = None
    df.loc[[5, 29], 'region'] = None
    return df


@pytest.fixture
def numeric_frame():
    """Correlated numeric columns, no missing values."""
    rng = np.random.RandomState(0)
    base = rng.normal(size=(80, 2))
    return pd.DataFrame({
        'x1': base[:, 0],
        'x2': base[:, 0] * 0.8 + rng.normal(scale=0.2, size=80),
        'x3': base[:, 1],
        'x4': base[:, 1] * -0.5 + rng.normal(scale=0.3, size=80),
        'y': rng.normal(size=80),
    })


@pytest.fixture
def metadata():
    return ColumnMetadata.from_data(
        pd.DataFrame({
            'id': ['a', 'b'],
            'age': [30, 40],
            'income': [1.5, 2.5],
            'city': ['x', 'y'],
            'signup': pd.to_datetime(['2020-01-01', '2021-06-01']),
            'target': [0.0, 1.0],
        }),
        roles={'id': ['id'], 'target': ['outcome']},
    )


@pytest.fixture
def clean_root():
    """Restore the root logger and the init flag after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    initialized = logging_utils._logging_initialized
    logging_utils._logging_initialized = False
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.captureWarnings(False)
    logging_utils._logging_initialized = initialized
