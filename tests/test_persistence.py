import json

import pandas as pd
import pytest

from tidyprep import (
    InvalidArgumentError,
    Recipe,
    all_nominal_predictors,
    all_numeric_predictors,
    apply,
    load_recipe,
    save_recipe,
    recipe,
    step_impute_mode,
    step_pca,
    train,
    update_role,
)
from tidyprep.steps import PCAStep, get_step_class, list_steps, step_from_dict


@pytest.fixture
def trained(customers):
    rec = recipe(customers, outcomes=['churned'])
    rec = update_role(rec, 'customer_id', new_role='id')
    rec = step_impute_mode(rec, all_nominal_predictors())
    rec = step_pca(rec, all_numeric_predictors(), threshold=0.75, center=True)
    return train(rec, customers, random_state=0)


class TestRegistry:

    def test_builtin_steps_registered(self):
        assert {'impute_mode', 'pca', 'add_role', 'update_role'} <= set(list_steps())
        assert get_step_class('pca') is PCAStep

    def test_unknown_tag(self):
        with pytest.raises(KeyError, match='Available'):
            get_step_class('step_unknown')

    def test_trained_step_round_trip(self, trained):
        step = trained.steps[2]
        spec = json.loads(json.dumps(step.to_dict()))
        rebuilt = step_from_dict(spec)

        assert isinstance(rebuilt, PCAStep)
        assert rebuilt.trained
        assert rebuilt.columns == step.columns
        assert rebuilt.new_names == step.new_names
        assert rebuilt.terms == step.terms
        assert not rebuilt.rotation.flags.writeable


class TestSaveLoad:

    @pytest.mark.parametrize('filename', ['recipe.json', 'recipe.joblib'])
    def test_round_trip_applies_identically(self, trained, customers, tmp_path, filename):
        path = tmp_path / 'artifacts' / filename
        save_recipe(trained, path)

        loaded = load_recipe(path)
        assert isinstance(loaded, Recipe)
        assert [s.id for s in loaded.steps] == [s.id for s in trained.steps]
        assert loaded.metadata == trained.metadata
        pd.testing.assert_frame_equal(apply(loaded, customers), apply(trained, customers))

    def test_json_drops_retained_data(self, trained, tmp_path):
        path = save_recipe(trained, tmp_path / 'recipe.json')
        assert load_recipe(path).retained is None

        spec = json.loads(path.read_text())
        assert spec['format_version'] == 1
        assert [s['tag'] for s in spec['steps']] == ['update_role', 'impute_mode', 'pca']

    def test_untrained_recipe(self, customers, tmp_path):
        rec = step_pca(recipe(customers, outcomes=['churned']), all_numeric_predictors(), num_comp=2)
        loaded = load_recipe(save_recipe(rec, tmp_path / 'draft.json'))

        assert not loaded.trained
        trained = train(loaded, customers)
        assert trained.steps[0].n_retained == 2

    def test_unsupported_version(self, trained, tmp_path):
        path = save_recipe(trained, tmp_path / 'recipe.json')
        spec = json.loads(path.read_text())
        spec['format_version'] = 99
        path.write_text(json.dumps(spec))

        with pytest.raises(InvalidArgumentError, match='99'):
            load_recipe(path)

    def test_pickle_of_something_else(self, tmp_path):
        from tidyprep.utils.checkpoint import save_pickle
        path = save_pickle({'not': 'a recipe'}, tmp_path / 'other.joblib')
        with pytest.raises(InvalidArgumentError):
            load_recipe(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_recipe(tmp_path / 'absent.json')
