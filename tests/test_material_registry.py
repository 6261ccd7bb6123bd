"""Tests for the shared material slot tables."""

import math

import pytest


class TestValidateAlbedo:
    """Tests for albedo validation."""

    def test_returns_float_triple(self):
        """Test integers and lists are normalized to a float tuple."""
        from glint.materials.registry import validate_albedo

        assert validate_albedo([1, 0, 0.5]) == (1.0, 0.0, 0.5)

    @pytest.mark.parametrize(
        "albedo, message",
        [
            ((0.5, 0.5), "3 channels"),
            ((0.5, 0.5, 0.5, 0.5), "3 channels"),
            ((0.5, 1.5, 0.5), "green"),
            ((0.5, 0.5, math.nan), "blue"),
        ],
    )
    def test_rejects_bad_albedo(self, albedo, message):
        """Test wrong lengths, out-of-range and NaN channels are rejected."""
        from glint.materials.registry import validate_albedo

        with pytest.raises(ValueError, match=message):
            validate_albedo(albedo)


class TestMaterialTable:
    """Tests for MaterialTable slot allocation."""

    def test_reserve_counts_up(self):
        """Test slots are handed out in order and clear starts over."""
        from glint.materials.registry import MaterialTable

        table = MaterialTable("test", 2)
        assert [table.reserve(), table.reserve()] == [0, 1]
        assert len(table) == 2
        assert "2/2" in repr(table)

        table.clear()
        assert len(table) == 0
        assert table.reserve() == 0

    def test_full_table_raises(self):
        """Test reserving past capacity names the kind."""
        from glint.materials.registry import MaterialTable

        table = MaterialTable("test", 1)
        table.reserve()
        with pytest.raises(RuntimeError, match="Maximum number of test materials \\(1\\)"):
            table.reserve()
        assert len(table) == 1

    def test_material_modules_share_counter_field(self):
        """Test the exported count field is the table's counter."""
        from glint.materials.metal import add_metal_material, num_metal_materials

        add_metal_material((0.5, 0.5, 0.5))
        assert num_metal_materials[None] == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
