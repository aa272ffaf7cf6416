"""
Unit tests for landmarks and landmark tables.
"""

import pytest
import numpy as np

from splinalign.interval import Interval
from splinalign.landmarks import (Landmarks, GOLDEN_RATIO, CROSS_HALFSIZE,
                                  SOURCE_X, SOURCE_Y, TARGET_X, TARGET_Y,
                                  newtable, readtable, writetable,
                                  pointcount, defaultpoints)
from splinalign.transformation import TransformationType


PHI = GOLDEN_RATIO


class TestConstants:
    def test_golden_ratio(self):
        assert GOLDEN_RATIO == pytest.approx(0.6180339887)
        assert CROSS_HALFSIZE == 5

    @pytest.mark.parametrize("name,count", [
        ("Translation", 1), ("Rigid body", 3), ("Scaled rotation", 2),
        ("Affine", 3), ("Bilinear", 4)])
    def test_pointcount(self, name, count):
        assert pointcount(name) == count
        assert pointcount(TransformationType.fromdisplayname(name)) == count


class TestDefaultLayouts:
    """Test the default placement of landmarks."""

    def test_rigid_body(self, source_interval_100):
        lm = Landmarks("Rigid body", source_interval_100)
        np.testing.assert_allclose(lm.points, [[50, 50],
                                               [50, 25 * PHI],
                                               [50, 100 - 25 * PHI]])

    def test_translation(self):
        pts = defaultpoints("Translation", 80, 60)
        np.testing.assert_allclose(pts, [[40, 30]])

    def test_scaled_rotation(self):
        pts = defaultpoints("Scaled rotation", 100, 60)
        np.testing.assert_allclose(pts, [[25 * PHI, 30],
                                         [100 - 25 * PHI, 30]])

    def test_affine(self):
        pts = defaultpoints("Affine", 100, 100)
        lo, hi = 25 * PHI, 100 - 25 * PHI
        np.testing.assert_allclose(pts, [[50, lo], [lo, hi], [hi, hi]])

    def test_bilinear(self):
        pts = defaultpoints("Bilinear", 100, 200)
        np.testing.assert_allclose(pts, [[25 * PHI, 50 * PHI],
                                         [25 * PHI, 200 - 50 * PHI],
                                         [100 - 25 * PHI, 50 * PHI],
                                         [100 - 25 * PHI, 200 - 50 * PHI]])

    def test_settransformation(self, source_interval_100):
        lm = Landmarks("Rigid body", source_interval_100)
        lm.setcurrentpoint(2)
        lm.settransformation("Bilinear")
        assert lm.current == 0
        assert len(lm) == 4
        assert lm.transformation is TransformationType.BILINEAR


class TestMovePoint:
    """Test constrained moves of the current point."""

    def test_clipping(self):
        lm = Landmarks("Translation", Interval(100, 80))
        lm.movepoint(150, -5)
        np.testing.assert_allclose(lm.point, [100, 0])

    def test_clipping_with_offset(self):
        lm = Landmarks("Translation", Interval(100, 80, 10, 20))
        lm.movepoint(0, 200)
        np.testing.assert_allclose(lm.point, [10, 100])

    def test_rigid_center_moves_freely(self, source_interval_100):
        lm = Landmarks("Rigid body", source_interval_100)
        lm.movepoint(51, 50)
        np.testing.assert_allclose(lm.point, [51, 50])

    def test_rigid_near_mirror_rejected(self, source_interval_100):
        lm = Landmarks("Rigid body", source_interval_100)
        lm.setcurrentpoint(1)
        before = lm.point.copy()
        lm.movepoint(50 + CROSS_HALFSIZE - 2, 25 * PHI)
        np.testing.assert_array_equal(lm.point, before)

    def test_rigid_collapse_rejected(self, source_interval_100):
        lm = Landmarks("Rigid body", source_interval_100)
        lm.setcurrentpoint(1)
        before = lm.point.copy()
        lm.movepoint(50, 100 - 25 * PHI - 8)
        np.testing.assert_array_equal(lm.point, before)

    def test_rigid_move_accepted(self, source_interval_100):
        lm = Landmarks("Rigid body", source_interval_100)
        lm.setcurrentpoint(2)
        lm.movepoint(20, 70)
        np.testing.assert_allclose(lm.point, [20, 70])
        np.testing.assert_allclose(lm.points[2], [20, 70])

    def test_setcurrentpoint_range(self, source_interval_100):
        lm = Landmarks("Affine", source_interval_100)
        with pytest.raises(IndexError):
            lm.setcurrentpoint(3)

    def test_setpoints_no_clipping(self, source_interval_100):
        lm = Landmarks("Scaled rotation", source_interval_100)
        lm.setpoints([[-10, 500], [3, 4]])
        np.testing.assert_allclose(lm.points, [[-10, 500], [3, 4]])
        with pytest.raises(ValueError):
            lm.setpoints([[1, 2]])


class TestTables:
    """Test restoring and storing landmarks through tables."""

    def test_read_target_with_offset(self):
        iv = Interval(100, 100, xoffset=10, yoffset=20, istarget=True)
        table = {SOURCE_X: [1.0], SOURCE_Y: [2.0],
                 TARGET_X: [60.0], TARGET_Y: [70.0]}
        lm = Landmarks("Translation", iv, table)
        np.testing.assert_allclose(lm.points, [[50, 50]])

    def test_read_source(self, source_interval_100):
        table = {SOURCE_X: [1.0, 2.0], SOURCE_Y: [3.0, 4.0]}
        lm = Landmarks("Scaled rotation", source_interval_100, table)
        np.testing.assert_allclose(lm.points, [[1, 3], [2, 4]])

    def test_wrong_row_count_falls_back(self, source_interval_100):
        table = {SOURCE_X: [1.0, 2.0], SOURCE_Y: [3.0, 4.0]}
        lm = Landmarks("Rigid body", source_interval_100, table)
        np.testing.assert_allclose(lm.points[0], [50, 50])

    def test_missing_column_falls_back(self):
        iv = Interval(100, 100, istarget=True)
        table = {SOURCE_X: [1.0], SOURCE_Y: [3.0], TARGET_X: [5.0]}
        lm = Landmarks("Translation", iv, table)
        np.testing.assert_allclose(lm.points, [[50, 50]])

    def test_missing_values_are_zero(self, source_interval_100):
        table = {SOURCE_X: [None, 2.0], SOURCE_Y: [3.0, float("nan")]}
        lm = Landmarks("Scaled rotation", source_interval_100, table)
        np.testing.assert_allclose(lm.points, [[0, 3], [2, 0]])

    def test_totable(self):
        src = Landmarks("Affine", Interval(100, 100, 5, 7))
        tgt = Landmarks("Affine", Interval(100, 100, 0, 0, istarget=True))
        table = newtable()
        src.totable(table)
        tgt.totable(table)
        assert set(table) == {SOURCE_X, SOURCE_Y, TARGET_X, TARGET_Y}
        assert all(len(v) == 3 for v in table.values())
        assert table[SOURCE_X][0] == pytest.approx(55.0)
        assert table[SOURCE_Y][0] == pytest.approx(7 + 25 * PHI)
        assert table[TARGET_X][0] == pytest.approx(50.0)

    def test_totable_resizes(self, source_interval_100):
        table = {SOURCE_X: [1, 2, 3, 4], SOURCE_Y: [1, 2, 3, 4],
                 TARGET_X: [9, 9, 9, 9], TARGET_Y: [8, 8, 8, 8]}
        Landmarks("Translation", source_interval_100).totable(table)
        assert table[TARGET_X] == [9]
        assert table[SOURCE_X] == [50.0]

    def test_roundtrip_through_table(self):
        iv = Interval(100, 100, 3, 4, istarget=True)
        lm = Landmarks("Bilinear", iv)
        lm.setpoints([[1, 2], [3, 4], [5, 6], [7, 8]])
        table = lm.totable(newtable())
        again = Landmarks("Bilinear", iv, table)
        np.testing.assert_allclose(again.points, lm.points)

    def test_csv(self, tmp_path):
        path = str(tmp_path / "landmarks.csv")
        table = newtable()
        table[SOURCE_X] = [1.5, 2.0]
        table[SOURCE_Y] = [3.0, None]
        table[TARGET_X] = [4.25, 5.0]
        table[TARGET_Y] = [float("nan"), 6.0]
        writetable(path, table)
        back = readtable(path)
        assert list(back) == [SOURCE_X, SOURCE_Y, TARGET_X, TARGET_Y]
        assert back[SOURCE_X] == [1.5, 2.0]
        assert back[SOURCE_Y] == [3.0, None]
        assert back[TARGET_X] == [4.25, 5.0]
        assert back[TARGET_Y] == [None, 6.0]

    def test_csv_with_label_column(self, tmp_path):
        path = tmp_path / "labeled.csv"
        path.write_text("label,sourceX,sourceY,targetX,targetY\n"
                        "left,10,20,30,40\n"
                        "right,60,20,70,40\n")
        table = readtable(str(path))
        assert table["label"] == ["left", "right"]
        assert table[SOURCE_X] == [10.0, 60.0]
        iv = Interval(100, 100, xoffset=5, yoffset=0, istarget=True)
        lm = Landmarks("Scaled rotation", iv, table)
        np.testing.assert_allclose(lm.points, [[25, 40], [65, 40]])
        out = str(tmp_path / "again.csv")
        writetable(out, lm.totable(table))
        back = readtable(out)
        assert back["label"] == ["left", "right"]
        assert back[TARGET_X] == [30.0, 70.0]

    def test_csv_with_bad_cell_falls_back(self, tmp_path, source_interval_100):
        path = tmp_path / "bad.csv"
        path.write_text("sourceX,sourceY,targetX,targetY\n"
                        "12,34,oops,56\n")
        table = readtable(str(path))
        assert TARGET_X not in table
        assert table[TARGET_Y] == [56.0]
        src = Landmarks("Translation", source_interval_100, table)
        np.testing.assert_allclose(src.points, [[12, 34]])
        tgt = Landmarks("Translation", Interval(80, 60, istarget=True), table)
        np.testing.assert_allclose(tgt.points, [[40, 30]])

    def test_non_numeric_values_fall_back(self, source_interval_100):
        table = {SOURCE_X: ["a", 2.0], SOURCE_Y: [3.0, 4.0]}
        lm = Landmarks("Scaled rotation", source_interval_100, table)
        np.testing.assert_allclose(
            lm.points, defaultpoints("Scaled rotation", 100, 100))

    def test_readtable_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            readtable(str(tmp_path / "nothing.csv"))
