import numpy as np
import pandas as pd
import pytest
from sklearn.decomposition import PCA

from tidyprep import (
    Config,
    InvalidArgumentError,
    MissingColumnError,
    NameCollisionError,
    StepFitError,
    TrainingError,
    all_numeric_predictors,
    apply,
    describe,
    juice,
    recipe,
    starts_with,
    step_pca,
    train,
)
from tidyprep.steps.pca import component_names, n_components_for_threshold

X_COLS = ['x1', 'x2', 'x3', 'x4']


@pytest.fixture
def rec(numeric_frame):
    return recipe(numeric_frame, outcomes=['y'])


class TestHelpers:

    def test_component_names_padding(self):
        assert component_names('PC', 3) == ['PC1', 'PC2', 'PC3']
        assert component_names('PC', 10)[0] == 'PC01'
        assert component_names('PC', 10)[-1] == 'PC10'
        long = component_names('comp', 101)
        assert long[0] == 'comp001'
        assert long[-1] == 'comp101'

    def test_threshold_count(self):
        sdev = np.sqrt([6.0, 3.0, 1.0])
        assert n_components_for_threshold(sdev, 0.5) == 1
        assert n_components_for_threshold(sdev, 0.6) == 1
        assert n_components_for_threshold(sdev, 0.61) == 2
        assert n_components_for_threshold(sdev, 0.9) == 2
        assert n_components_for_threshold(sdev, 1.0) == 3


class TestConstruction:

    @pytest.mark.parametrize('kwargs', [
        {'num_comp': 0},
        {'num_comp': -2},
        {'num_comp': 2.5},
        {'threshold': 0},
        {'threshold': 1.5},
        {'prefix': ''},
    ])
    def test_invalid_options(self, rec, kwargs):
        with pytest.raises(InvalidArgumentError):
            step_pca(rec, all_numeric_predictors(), **kwargs)

    def test_defaults_from_config(self, numeric_frame):
        config = Config.from_dict({'steps': {'pca_num_comp': 3, 'pca_prefix': 'F'}})
        rec = step_pca(recipe(numeric_frame, outcomes=['y'], config=config), all_numeric_predictors())
        step = rec.steps[0]
        assert step.num_comp == 3
        assert step.prefix == 'F'
        assert step.role == 'predictor'


class TestTraining:

    def test_replaces_sources_with_components(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=2), numeric_frame)
        out = juice(trained)

        assert list(out.columns) == ['y', 'PC1', 'PC2']
        assert trained.metadata.names == ['y', 'PC1', 'PC2']
        assert trained.metadata['PC1'].roles == ('predictor',)
        assert trained.metadata['PC1'].source == 'derived'

    def test_num_comp_capped_at_column_count(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=10), numeric_frame)
        assert trained.steps[0].n_retained == 4
        assert list(juice(trained).columns) == ['y', 'PC1', 'PC2', 'PC3', 'PC4']

    def test_threshold_is_monotone(self, rec, numeric_frame):
        counts = []
        for t in (0.2, 0.5, 0.8, 0.95, 1.0):
            step = train(step_pca(rec, all_numeric_predictors(), threshold=t), numeric_frame).steps[0]
            counts.append(step.n_retained)
        assert counts == sorted(counts)
        assert 1 <= counts[0] and counts[-1] <= 4

    def test_threshold_reaches_requested_share(self, rec, numeric_frame):
        step = train(step_pca(rec, all_numeric_predictors(), threshold=0.8), numeric_frame).steps[0]
        share = step.explained_variance()['cumulative percent variance'].to_numpy() / 100
        assert share[step.n_retained - 1] >= 0.8
        if step.n_retained > 1:
            assert share[step.n_retained - 2] < 0.8

    def test_scores_are_uncentred_projection(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=2), numeric_frame)
        step = trained.steps[0]

        X = numeric_frame[X_COLS].to_numpy()
        np.testing.assert_allclose(juice(trained)[['PC1', 'PC2']].to_numpy(), X @ step.rotation[:, :2])
        np.testing.assert_allclose(
            step.sdev,
            np.linalg.svd(X, compute_uv=False) / np.sqrt(len(X) - 1),
        )

    def test_centred_matches_sklearn_up_to_sign(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=2, center=True), numeric_frame)
        scores = juice(trained)[['PC1', 'PC2']].to_numpy()

        expected = PCA(n_components=2).fit_transform(numeric_frame[X_COLS].to_numpy())
        np.testing.assert_allclose(np.abs(scores), np.abs(expected), atol=1e-8)
        np.testing.assert_allclose(scores.mean(axis=0), 0, atol=1e-10)

    def test_parameters_are_frozen(self, rec, numeric_frame):
        step = train(step_pca(rec, all_numeric_predictors(), center=True), numeric_frame).steps[0]
        with pytest.raises(ValueError):
            step.rotation[0, 0] = 1.0
        with pytest.raises(ValueError):
            step.means[0] = 1.0

    def test_missing_values_fail(self, rec, numeric_frame):
        bad = numeric_frame.copy()
        bad.loc[4, 'x3'] = np.nan
        with pytest.raises(TrainingError) as excinfo:
            train(step_pca(rec, all_numeric_predictors()), bad)
        assert isinstance(excinfo.value.__cause__, StepFitError)
        assert 'x3' in str(excinfo.value)

    def test_constant_column_cannot_be_scaled(self, numeric_frame):
        df = numeric_frame.assign(c=1.0)
        rec = recipe(df, outcomes=['y'])
        with pytest.raises(TrainingError) as excinfo:
            train(step_pca(rec, all_numeric_predictors(), scale=True), df)
        assert isinstance(excinfo.value.__cause__, StepFitError)

    def test_collision_with_existing_column(self, numeric_frame):
        df = numeric_frame.assign(PC1=0.0)
        rec = recipe(df, outcomes=['y'], roles={'PC1': 'id'})
        rec = step_pca(rec, starts_with('x'), num_comp=2)

        with pytest.raises(TrainingError) as excinfo:
            train(rec, df)
        err = excinfo.value
        assert isinstance(err.__cause__, NameCollisionError)
        assert err.cause is err.__cause__
        assert err.caused_by(NameCollisionError)
        assert not err.caused_by(StepFitError)
        assert err.step_index == 0
        # the original frame still holds its own PC1
        assert (df['PC1'] == 0.0).all()

    def test_collision_rename_policy(self, numeric_frame):
        df = numeric_frame.assign(PC1=0.0)
        config = Config(collision_policy='rename')
        rec = recipe(df, outcomes=['y'], roles={'PC1': 'id'}, config=config)
        trained = train(step_pca(rec, starts_with('x'), num_comp=2), df)

        assert trained.steps[0].new_names == ('PC1_1', 'PC2')
        assert list(juice(trained).columns) == ['y', 'PC1', 'PC1_1', 'PC2']


class TestApplication:

    def test_new_data_uses_frozen_rotation(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=3, center=True, scale=True), numeric_frame)
        step = trained.steps[0]

        new = numeric_frame.iloc[:10] * 2
        out = apply(trained, new)

        X = new[X_COLS].to_numpy()
        expected = ((X - step.means) / step.scales) @ step.rotation[:, :3]
        np.testing.assert_allclose(out[['PC1', 'PC2', 'PC3']].to_numpy(), expected)
        assert list(out.index) == list(new.index)

    def test_missing_source_column(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors()), numeric_frame)
        with pytest.raises(MissingColumnError, match='x2'):
            apply(trained, numeric_frame.drop(columns='x2'))

    def test_output_name_already_in_data(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=1), numeric_frame)
        step = trained.steps[0]
        with pytest.raises(NameCollisionError):
            step.apply(numeric_frame.assign(PC1=1.0))


class TestDescribe:

    def test_untrained(self, rec):
        tidy = describe(step_pca(rec, 'x1', 'x2', id='pca_a'), 0)
        assert tidy['terms'].tolist() == ['x1', 'x2']
        assert tidy['value'].isna().all()
        assert tidy['component'].isna().all()
        assert (tidy['id'] == 'pca_a').all()

    def test_loadings(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=2), numeric_frame)
        step = trained.steps[0]
        tidy = describe(trained, 0)

        assert len(tidy) == 16
        assert list(tidy.columns) == ['terms', 'value', 'component', 'id']
        first = tidy[tidy['component'] == 'PC1']
        assert first['terms'].tolist() == X_COLS
        np.testing.assert_allclose(first['value'].to_numpy(), step.rotation[:, 0])

    def test_variance(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors(), num_comp=2), numeric_frame)
        tidy = describe(trained, 0, type='variance')

        assert set(tidy['terms']) == {
            'variance', 'cumulative variance', 'percent variance', 'cumulative percent variance',
        }
        cumulative = tidy[tidy['terms'] == 'cumulative percent variance']['value']
        assert cumulative.iloc[-1] == pytest.approx(100.0)

    def test_unknown_type(self, rec, numeric_frame):
        trained = train(step_pca(rec, all_numeric_predictors()), numeric_frame)
        with pytest.raises(InvalidArgumentError):
            describe(trained, 0, type='loadings')
