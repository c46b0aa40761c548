"""Tests for AveragingMethod selection, averaging and the accumulation pass."""

from __future__ import annotations

import logging
from typing import Any, List

import numpy as np
import pytest
from numpy.testing import assert_allclose

from field_averaging import (
    SCALAR,
    VECTOR,
    AveragingMethod,
    Basic,
    DegenerateSampleError,
    Dual,
    OutputField,
    PolyMesh,
    ShapeMismatchError,
    UnknownAveragingMethodError,
    averaging_method_names,
    register_averaging_method,
    use,
)


# -----------------------------------------------------------------------------
# Test strategies and writers
# -----------------------------------------------------------------------------
@register_averaging_method("test-constant")
class ConstantMethod(AveragingMethod):
    """Returns config['value'] everywhere with zero gradient."""

    def __init__(self, name, config, mesh, kind=SCALAR):
        super().__init__(name, config, mesh, [mesh.n_cells], kind)
        self.value = float(config.get("value", 1.0))
        self.update_calls = 0

    def update_grad(self) -> None:
        self.update_calls += 1

    def interpolate(self, point, tet):
        return np.full(self.kind.shape, self.value)

    def interpolate_grad(self, point, tet):
        return np.zeros(self.kind.grad_shape)

    def primitive_field(self):
        return self.fields[0]


@register_averaging_method("test-x")
class XCoordinateMethod(AveragingMethod):
    """Returns the x coordinate of the sample point; gradient is e_x."""

    def __init__(self, name, config, mesh, kind=SCALAR):
        super().__init__(name, config, mesh, [mesh.n_cells], kind)

    def interpolate(self, point, tet):
        return point[0]

    def interpolate_grad(self, point, tet):
        return np.array([1.0, 0.0, 0.0])

    def primitive_field(self):
        return self.fields[0]


class RecordingWriter:
    """Keeps every written field; fails on names ending with `fail_suffix`."""

    def __init__(self, fail_suffix: str = "") -> None:
        self.fail_suffix = fail_suffix
        self.attempts: List[str] = []
        self.fields: dict[str, OutputField] = {}

    def write(self, field: OutputField) -> bool:
        self.attempts.append(field.name)
        if self.fail_suffix and field.name.endswith(self.fail_suffix):
            return False
        self.fields[field.name] = field
        return True


def _values(writer: RecordingWriter, name: str, suffix: str) -> Any:
    return writer.fields[f"{name}:{suffix}"].values


# -----------------------------------------------------------------------------
# Selection
# -----------------------------------------------------------------------------
def test_builtin_methods_registered():
    names = averaging_method_names()
    assert "basic" in names
    assert "dual" in names
    assert names == sorted(names)


def test_new_selects_registered_class(two_hex_mesh):
    am = AveragingMethod.new("alpha", {"type": "basic"}, two_hex_mesh)
    assert isinstance(am, Basic)
    assert am.name == "alpha"
    assert am.kind == SCALAR

    am = AveragingMethod.new("U", {"type": "dual"}, two_hex_mesh, VECTOR)
    assert isinstance(am, Dual)
    assert am.kind == VECTOR


def test_new_unknown_method_lists_valid_names(two_hex_mesh):
    with pytest.raises(UnknownAveragingMethodError) as excinfo:
        AveragingMethod.new("alpha", {"type": "nonexistent"}, two_hex_mesh)

    err = excinfo.value
    assert isinstance(err, KeyError)
    assert err.type_name == "nonexistent"
    assert "basic" in err.valid and "dual" in err.valid
    assert "nonexistent" in str(err)
    assert "basic" in str(err)


def test_new_without_type_entry(two_hex_mesh):
    with pytest.raises(KeyError, match="type"):
        AveragingMethod.new("alpha", {}, two_hex_mesh)


def test_register_duplicate_name_rejected():
    with pytest.raises(ValueError, match="already registered"):

        @register_averaging_method("basic")
        class Other(ConstantMethod):
            pass


# -----------------------------------------------------------------------------
# Construction and copy
# -----------------------------------------------------------------------------
def test_buffers_match_region_sizes(mixed_mesh):
    basic = AveragingMethod.new("a", {"type": "basic"}, mixed_mesh)
    dual = AveragingMethod.new("a", {"type": "dual"}, mixed_mesh, VECTOR)

    assert len(basic) == 1
    assert basic.fields.sizes == (mixed_mesh.n_cells,)
    assert len(dual) == 2
    assert dual.fields.sizes == (mixed_mesh.n_cells, mixed_mesh.n_points)
    assert dual[1].shape == (mixed_mesh.n_points, 3)
    assert all(np.all(b == 0.0) for b in dual)


def test_copy_deep_copies_buffers_and_shares_mesh(two_hex_mesh):
    cfg = {"type": "basic"}
    am = AveragingMethod.new("a", cfg, two_hex_mesh)
    am[0][:] = [1.0, 2.0]
    am.average()

    dup = am.copy()
    dup[0][0] = 50.0
    dup.data_grad[0] += 1.0

    assert am[0][0] == 1.0
    assert not np.allclose(am.data_grad, dup.data_grad)
    assert dup.mesh is am.mesh
    assert dup.config is am.config
    assert type(dup) is Basic


# -----------------------------------------------------------------------------
# average()
# -----------------------------------------------------------------------------
def test_average_without_weight_only_updates_grad(two_hex_mesh):
    am = AveragingMethod.new("a", {"type": "test-constant"}, two_hex_mesh)
    am[0][:] = [3.0, 4.0]
    am.average()

    assert am.update_calls == 1
    assert_allclose(am[0], [3.0, 4.0])


def test_average_with_weight_divides_with_floor(two_hex_mesh):
    am = AveragingMethod.new("a", {"type": "test-constant"}, two_hex_mesh)
    weight = AveragingMethod.new("w", {"type": "test-constant"}, two_hex_mesh)
    am[0][:] = [3.0, 4.0]
    weight[0][:] = [2.0, 1e-12]  # second entry below eps

    with use(eps=1e-6):
        am.average(weight)

    assert am.update_calls == 1
    assert_allclose(am[0], [1.5, 4.0 / 1e-6])
    # weight untouched
    assert_allclose(weight[0], [2.0, 1e-12])


def test_average_vector_by_scalar_weight(two_hex_mesh):
    am = AveragingMethod.new("U", {"type": "dual"}, two_hex_mesh, VECTOR)
    weight = AveragingMethod.new("w", {"type": "dual"}, two_hex_mesh)
    am[0][:] = [[2.0, 4.0, 6.0], [1.0, 2.0, 3.0]]
    am[1][:] = 8.0
    weight[0][:] = [2.0, 1.0]
    weight[1][:] = 4.0

    am.average(weight)

    assert_allclose(am[0], [[1.0, 2.0, 3.0], [1.0, 2.0, 3.0]])
    assert_allclose(am[1], 2.0)


def test_average_weight_layout_mismatch(two_hex_mesh):
    am = AveragingMethod.new("a", {"type": "basic"}, two_hex_mesh)

    with pytest.raises(ShapeMismatchError):
        am.average(AveragingMethod.new("w", {"type": "dual"}, two_hex_mesh))

    with pytest.raises(ShapeMismatchError):
        am.average(AveragingMethod.new("w", {"type": "basic"}, two_hex_mesh, VECTOR))


# -----------------------------------------------------------------------------
# write()
# -----------------------------------------------------------------------------
def test_write_names_and_order(mixed_mesh):
    am = AveragingMethod.new("alpha", {"type": "test-constant"}, mixed_mesh)
    writer = RecordingWriter()

    assert am.write(writer) is True
    assert writer.attempts == [
        "alpha:cellValue",
        "alpha:cellGrad",
        "alpha:pointValue",
        "alpha:pointGrad",
    ]
    assert writer.fields["alpha:cellValue"].association == "cell"
    assert writer.fields["alpha:pointGrad"].association == "point"
    assert writer.fields["alpha:cellValue"].time_name == am.time_name


@pytest.mark.parametrize(
    "suffix, attempted",
    [("cellValue", 1), ("cellGrad", 2), ("pointValue", 3), ("pointGrad", 4)],
)
def test_write_stops_at_first_failure(two_hex_mesh, suffix, attempted):
    am = AveragingMethod.new("alpha", {"type": "test-constant"}, two_hex_mesh)
    writer = RecordingWriter(fail_suffix=suffix)

    assert am.write(writer) is False
    assert len(writer.attempts) == attempted
    assert writer.attempts[-1] == f"alpha:{suffix}"


def test_write_uses_configured_writer(two_hex_mesh):
    am = AveragingMethod.new("alpha", {"type": "test-constant"}, two_hex_mesh)
    am.writer = RecordingWriter()
    am.time_name = "0.25"

    assert am.write() is True
    assert am.writer.fields["alpha:pointValue"].time_name == "0.25"


@pytest.mark.parametrize("mesh_name", ["single_tet_mesh", "two_hex_mesh", "mixed_mesh"])
def test_uniform_value_gives_uniform_fields(request, mesh_name):
    mesh: PolyMesh = request.getfixturevalue(mesh_name)
    c = 2.75
    am = AveragingMethod.new("c", {"type": "test-constant", "value": c}, mesh)
    writer = RecordingWriter()
    assert am.write(writer)

    assert_allclose(_values(writer, "c", "cellValue"), c, rtol=1e-12)
    assert_allclose(_values(writer, "c", "pointValue"), c, rtol=1e-12)
    assert_allclose(_values(writer, "c", "cellGrad"), 0.0)
    assert_allclose(_values(writer, "c", "pointGrad"), 0.0)
    assert _values(writer, "c", "cellGrad").shape == (mesh.n_cells, 3)
    assert _values(writer, "c", "pointGrad").shape == (mesh.n_points, 3)


def test_uniform_vector_value_shapes(mixed_mesh):
    am = AveragingMethod.new("U", {"type": "test-constant", "value": -1.0}, mixed_mesh, VECTOR)
    writer = RecordingWriter()
    assert am.write(writer)

    assert _values(writer, "U", "cellValue").shape == (mixed_mesh.n_cells, 3)
    assert _values(writer, "U", "cellGrad").shape == (mixed_mesh.n_cells, 3, 3)
    assert _values(writer, "U", "pointGrad").shape == (mixed_mesh.n_points, 3, 3)
    assert_allclose(_values(writer, "U", "pointValue"), -1.0)


def test_single_tet_x_coordinate_end_to_end(single_tet_mesh):
    mesh = single_tet_mesh
    am = AveragingMethod.new("x", {"type": "test-x"}, mesh)
    writer = RecordingWriter()
    assert am.write(writer)

    assert_allclose(_values(writer, "x", "cellValue"), [mesh.cell_centres[0, 0]])
    assert_allclose(_values(writer, "x", "cellValue"), [0.25])
    assert_allclose(_values(writer, "x", "pointValue"), mesh.points[:, 0], atol=1e-14)
    assert_allclose(_values(writer, "x", "cellGrad"), [[1.0, 0.0, 0.0]])
    assert_allclose(_values(writer, "x", "pointGrad"), np.tile([1.0, 0.0, 0.0], (4, 1)))


def test_x_coordinate_on_mixed_mesh(mixed_mesh):
    am = AveragingMethod.new("x", {"type": "test-x"}, mixed_mesh)
    cell_value, _, point_value, _ = am.accumulate()

    assert_allclose(cell_value, mixed_mesh.cell_centres[:, 0], atol=1e-13)
    assert_allclose(point_value, mixed_mesh.points[:, 0], atol=1e-13)


def test_point_volume_is_sum_of_incident_tets(two_hex_mesh):
    """Point 'volume' weights: recompute them with a volume-counting method."""
    mesh = two_hex_mesh
    expected = np.zeros(mesh.n_points)
    for celli in range(mesh.n_cells):
        for tet in mesh.cell_tets(celli):
            for p in mesh.tet_point_labels(tet):
                expected[p] += mesh.tet_volume(tet)

    # Each cube contributes 1 in total over its 12 tets, 3 vertices each.
    assert expected.sum() == pytest.approx(3.0 * mesh.cell_volumes.sum())

    # Interpolating v*1 at points and normalizing gives exactly 1 where touched.
    am = AveragingMethod.new("one", {"type": "test-constant", "value": 1.0}, mesh)
    _, _, point_value, _ = am.accumulate()
    assert_allclose(point_value[expected > 0], 1.0)


# -----------------------------------------------------------------------------
# Degenerate point volumes
# -----------------------------------------------------------------------------
@pytest.fixture
def tet_with_orphan_point(single_tet_mesh) -> PolyMesh:
    points = np.vstack((single_tet_mesh.points, [[5.0, 5.0, 5.0]]))
    return PolyMesh(points, [("tetra", np.array([[0, 1, 2, 3]]))])


def test_orphan_point_left_at_zero_with_warning(tet_with_orphan_point, caplog):
    am = AveragingMethod.new("c", {"type": "test-constant", "value": 3.0}, tet_with_orphan_point)
    with use(degenerate="warn"), caplog.at_level(logging.WARNING):
        cell_value, _, point_value, point_grad = am.accumulate()

    assert_allclose(point_value, [3.0, 3.0, 3.0, 3.0, 0.0])
    assert np.all(np.isfinite(point_grad))
    assert_allclose(cell_value, [3.0])
    assert any("zero accumulated volume" in r.getMessage() for r in caplog.records)


def test_orphan_point_ignore_policy_is_silent(tet_with_orphan_point, caplog):
    am = AveragingMethod.new("c", {"type": "test-constant"}, tet_with_orphan_point)
    with use(degenerate="ignore"), caplog.at_level(logging.WARNING):
        am.accumulate()
    assert not any("zero accumulated volume" in r.getMessage() for r in caplog.records)


def test_orphan_point_raise_policy(tet_with_orphan_point):
    am = AveragingMethod.new("c", {"type": "test-constant"}, tet_with_orphan_point)
    writer = RecordingWriter()
    with use(degenerate="raise"):
        with pytest.raises(DegenerateSampleError):
            am.write(writer)
    assert writer.attempts == []
