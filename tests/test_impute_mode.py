import numpy as np
import pandas as pd
import pytest

from tidyprep import (
    ColumnTypeError,
    ImputeError,
    TrainingError,
    all_nominal_predictors,
    apply,
    describe,
    juice,
    recipe,
    step_impute_mode,
    train,
)
from tidyprep.steps.impute_mode import estimate_mode


class TestEstimateMode:

    def test_most_frequent_value(self):
        values = pd.Series(['A', 'A', 'B', None], name='g')
        assert estimate_mode(values, np.random.RandomState(0)) == 'A'

    def test_numpy_scalars_become_python(self):
        mode = estimate_mode(pd.Series([1, 1, 2]), np.random.RandomState(0))
        assert type(mode) is int

    def test_all_missing(self):
        with pytest.raises(ImputeError, match="'g'"):
            estimate_mode(pd.Series([None, None], name='g', dtype=object), np.random.RandomState(0))

    def test_ties_depend_only_on_seed(self):
        forward = pd.Series(['B', 'A'])
        backward = pd.Series(['A', 'B'])
        for seed in range(10):
            assert (
                estimate_mode(forward, np.random.RandomState(seed))
                == estimate_mode(backward, np.random.RandomState(seed))
            )


class TestImputeModeStep:

    def test_fills_with_training_mode(self):
        df = pd.DataFrame({'g': ['A', 'A', 'B', None]})
        trained = train(step_impute_mode(recipe(df), 'g'), df)

        assert trained.steps[0].mode_map == {'g': 'A'}
        out = apply(trained, pd.DataFrame({'g': [None, 'B']}))
        assert out['g'].tolist() == ['A', 'B']

    def test_tie_break_reproducible_with_seed(self):
        df = pd.DataFrame({'g': ['A', 'B', None]})
        rec = step_impute_mode(recipe(df), 'g')

        first = train(rec, df, random_state=11).steps[0].mode_map['g']
        again = train(rec, df, random_state=11).steps[0].mode_map['g']
        assert first == again

        seen = {train(rec, df, random_state=s).steps[0].mode_map['g'] for s in range(50)}
        assert seen == {'A', 'B'}

    def test_seed_from_config(self):
        from tidyprep import Config

        df = pd.DataFrame({'g': ['A', 'B', None]})
        rec = step_impute_mode(recipe(df, config=Config(random_state=5)), 'g')
        modes = {train(rec, df).steps[0].mode_map['g'] for _ in range(5)}
        assert len(modes) == 1

    def test_all_missing_column_fails_training(self):
        df = pd.DataFrame({'g': pd.Series([None, None], dtype=object), 'x': [1.0, 2.0]})
        rec = step_impute_mode(recipe(df), 'g')

        with pytest.raises(TrainingError) as excinfo:
            train(rec, df)
        assert isinstance(excinfo.value.__cause__, ImputeError)
        assert excinfo.value.step_index == 0

    def test_numeric_column_rejected(self):
        df = pd.DataFrame({'x': [1.0, None, 3.0]})
        with pytest.raises(TrainingError) as excinfo:
            train(step_impute_mode(recipe(df), 'x'), df)
        assert isinstance(excinfo.value.__cause__, ColumnTypeError)

    def test_categorical_dtype_kept(self):
        df = pd.DataFrame({'g': pd.Categorical(['a', 'a', 'b', None])})
        trained = train(step_impute_mode(recipe(df), 'g'), df)

        new = pd.DataFrame({'g': pd.Categorical([None, 'z'])})
        out = apply(trained, new)

        assert isinstance(out['g'].dtype, pd.CategoricalDtype)
        assert out['g'].tolist() == ['a', 'z']

    def test_input_not_modified(self, customers):
        rec = recipe(customers, outcomes=['churned'], roles={'customer_id': 'id'})
        trained = train(step_impute_mode(rec, all_nominal_predictors()), customers)

        before = customers.copy()
        out = apply(trained, customers)

        pd.testing.assert_frame_equal(customers, before)
        assert out['plan'].notna().all()
        assert out['region'].notna().all()
        # outcome and id columns were not selected
        assert out['churned'].equals(customers['churned'])

    def test_describe(self, customers):
        rec = recipe(customers, outcomes=['churned'], roles={'customer_id': 'id'})
        rec = step_impute_mode(rec, 'plan', 'region', id='modes')

        untrained = describe(rec, 0)
        assert untrained['terms'].tolist() == ['plan', 'region']
        assert untrained['value'].isna().all()
        assert (untrained['id'] == 'modes').all()

        trained = train(rec, customers, random_state=0)
        tidy = describe(trained, 0)
        assert list(tidy.columns) == ['terms', 'value', 'id']
        modes = trained.steps[0].mode_map
        assert tidy['value'].tolist() == [modes['plan'], modes['region']]
        assert modes['plan'] == customers['plan'].value_counts().idxmax()

    def test_juice_matches_apply_on_training_data(self, customers):
        rec = recipe(customers, outcomes=['churned'], roles={'customer_id': 'id'})
        trained = train(step_impute_mode(rec, all_nominal_predictors()), customers)
        pd.testing.assert_frame_equal(juice(trained), apply(trained, customers))
