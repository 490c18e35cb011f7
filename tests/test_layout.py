"""Tests for layout declarations and YAML layout files."""

import pytest
import yaml

from motorik_surface import config
from motorik_surface.layout import (
    SCHEMA_VERSION,
    LayoutError,
    default_declaration,
    load_declaration,
    save_declaration,
)


class TestDefaultDeclaration:
    """Test the built-in layout."""

    def test_ids_are_unique(self):
        ids = [declaration['id'] for declaration in default_declaration()]

        assert len(ids) == len(set(ids))

    def test_every_declaration_has_kind(self):
        for declaration in default_declaration():
            assert declaration['kind']

    def test_row_defaults(self):
        by_id = {declaration['id']: declaration for declaration in default_declaration()}

        assert by_id['bd-steps']['default'] == '16'
        assert by_id['sn-probability']['default'] == -1.0
        assert by_id['hh-bender']['default'] is True
        assert by_id['midi-bpm']['default'] == config.bpm_default

    def test_follows_configured_rows(self):
        config.rows = ['bd']

        ids = [declaration['id'] for declaration in default_declaration()]

        assert 'bd-steps' in ids
        assert 'sn-steps' not in ids


class TestLayoutFiles:
    """Test saving and loading layouts."""

    def test_save_and_load(self, tmp_path):
        declarations = [{'id': 'master-level', 'kind': 'h-slider', 'default': 90}]

        path = save_declaration(tmp_path / 'layouts' / 'small.yaml', declarations)

        assert path.exists()
        assert load_declaration(path) == declarations

    def test_saved_file_has_schema_version(self, tmp_path):
        path = save_declaration(tmp_path / 'layout.yaml', default_declaration())

        with open(path, encoding='utf-8') as f:
            data = yaml.safe_load(f)

        assert data['schema_version'] == SCHEMA_VERSION
        assert len(data['controls']) == len(default_declaration())

    def test_missing_file(self, tmp_path):
        with pytest.raises(LayoutError):
            load_declaration(tmp_path / 'missing.yaml')

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text('controls: [unclosed', encoding='utf-8')

        with pytest.raises(LayoutError):
            load_declaration(path)

    def test_newer_schema_rejected(self, tmp_path):
        path = tmp_path / 'future.yaml'
        path.write_text(yaml.safe_dump({'schema_version': SCHEMA_VERSION + 1, 'controls': []}),
                        encoding='utf-8')

        with pytest.raises(LayoutError):
            load_declaration(path)

    def test_missing_controls_rejected(self, tmp_path):
        path = tmp_path / 'empty.yaml'
        path.write_text(yaml.safe_dump({'schema_version': 1}), encoding='utf-8')

        with pytest.raises(LayoutError):
            load_declaration(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text('- 1\n- 2\n', encoding='utf-8')

        with pytest.raises(LayoutError):
            load_declaration(path)
