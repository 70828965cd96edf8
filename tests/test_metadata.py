import numpy as np
import pandas as pd
import pytest

from tidyprep.core.metadata import (
    ColumnInfo,
    ColumnMetadata,
    MetadataDelta,
    check_no_collisions,
    infer_type,
    resolve_new_names,
)
from tidyprep.errors import InvalidArgumentError, NameCollisionError, SelectionError


class TestInferType:

    @pytest.mark.parametrize('values, expected', [
        ([1, 2], 'numeric'),
        ([1.5, np.nan], 'numeric'),
        (['a', None], 'nominal'),
        ([True, False], 'nominal'),
        (pd.Categorical(['a', 'b']), 'nominal'),
        (pd.to_datetime(['2021-01-01', '2021-01-02']), 'date'),
        (pd.to_timedelta([1, 2], unit='D'), 'other'),
    ])
    def test_dtype_mapping(self, values, expected):
        assert infer_type(pd.Series(values)) == expected


class TestColumnInfo:

    def test_roles_deduplicated_in_order(self):
        info = ColumnInfo('x', 'numeric', ('predictor', 'id', 'predictor'))
        assert info.roles == ('predictor', 'id')

    def test_roles_required(self):
        with pytest.raises(InvalidArgumentError):
            ColumnInfo('x', 'numeric', ())

    def test_bad_type(self):
        with pytest.raises(InvalidArgumentError):
            ColumnInfo('x', 'text', ('predictor',))


class TestColumnMetadata:

    def test_from_data_defaults_to_predictor(self):
        meta = ColumnMetadata.from_data(pd.DataFrame({'a': [1], 'b': ['u']}))
        assert meta['a'].roles == ('predictor',)
        assert meta['b'].type == 'nominal'
        assert meta['a'].source == 'original'

    def test_duplicate_names_rejected(self):
        df = pd.DataFrame([[1, 2]], columns=['a', 'a'])
        with pytest.raises(NameCollisionError):
            ColumnMetadata.from_data(df)

    def test_unknown_name_lookup(self, metadata):
        with pytest.raises(SelectionError):
            metadata['missing']

    def test_merge_returns_new_table(self, metadata):
        delta = MetadataDelta(
            added=(ColumnInfo('PC1', 'numeric', ('predictor',), 'derived'),),
            removed=('age', 'income'),
            modified=(ColumnInfo('city', 'nominal', ('predictor', 'geo')),),
        )
        merged = metadata.merge(delta)

        assert merged.names == ['id', 'city', 'signup', 'target', 'PC1']
        assert merged['city'].roles == ('predictor', 'geo')
        assert merged['PC1'].source == 'derived'
        # source table untouched
        assert 'age' in metadata
        assert metadata['city'].roles == ('predictor',)

    def test_merge_rejects_existing_added_name(self, metadata):
        delta = MetadataDelta(added=(ColumnInfo('age', 'numeric', ('predictor',), 'derived'),))
        with pytest.raises(NameCollisionError):
            metadata.merge(delta)

    def test_merge_rejects_unknown_removal(self, metadata):
        with pytest.raises(SelectionError):
            metadata.merge(MetadataDelta(removed=('nope',)))

    def test_reconcile_reorders(self, metadata):
        order = list(reversed(metadata.names))
        assert metadata.reconcile(order).names == order

    def test_reconcile_detects_drift(self, metadata):
        with pytest.raises(InvalidArgumentError, match='out of sync'):
            metadata.reconcile(metadata.names + ['stray'])

    def test_frame_has_row_per_role(self):
        meta = ColumnMetadata((ColumnInfo('x', 'numeric', ('predictor', 'id')),))
        frame = meta.to_frame()
        assert list(frame.columns) == ['variable', 'type', 'role', 'source']
        assert frame['role'].tolist() == ['predictor', 'id']

    def test_dict_round_trip(self, metadata):
        rebuilt = ColumnMetadata.from_dict(metadata.to_dict())
        assert rebuilt == metadata


class TestNameCollisions:

    def test_unique_names_pass_through(self):
        assert resolve_new_names(['PC1', 'PC2'], ['x1', 'x2']) == ['PC1', 'PC2']

    def test_error_policy(self):
        with pytest.raises(NameCollisionError, match='PC1'):
            resolve_new_names(['PC1', 'PC2'], ['x1', 'PC1'])

    def test_rename_policy_is_deterministic(self):
        existing = ['PC1', 'PC1_1', 'x']
        first = resolve_new_names(['PC1', 'PC2'], existing, policy='rename')
        assert first == ['PC1_2', 'PC2']
        assert resolve_new_names(['PC1', 'PC2'], existing, policy='rename') == first

    def test_rename_does_not_land_on_another_candidate(self):
        assert resolve_new_names(['a', 'a_1'], ['a'], policy='rename') == ['a_2', 'a_1']

    def test_duplicate_candidates(self):
        with pytest.raises(NameCollisionError):
            resolve_new_names(['a', 'a'], [], policy='rename')

    def test_frozen_names_checked_against_data(self):
        check_no_collisions(['PC1'], ['x1'])
        with pytest.raises(NameCollisionError):
            check_no_collisions(['PC1'], ['x1', 'PC1'])
