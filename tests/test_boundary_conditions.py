"""Tests for boundary condition variants and per-field condition sets."""

import numpy as np
import pytest

from freesurface.boundary_conditions import (
    BoundaryConditionKind,
    FieldBoundaryConditions,
    FluxBoundaryCondition,
    GradientBoundaryCondition,
    NormalFlowBoundaryCondition,
    PeriodicBoundaryCondition,
    ValueBoundaryCondition,
    ZeroFluxBoundaryCondition,
    evaluate_condition,
)
from freesurface.core import Center, ConfigurationError, Face


class TestBoundaryCondition:
    """Tests for the BoundaryCondition sum type."""

    def test_constructors_set_kind(self):
        assert PeriodicBoundaryCondition().kind == BoundaryConditionKind.PERIODIC
        assert ValueBoundaryCondition(1.0).kind == BoundaryConditionKind.VALUE
        assert GradientBoundaryCondition(0.1).kind == BoundaryConditionKind.GRADIENT
        assert FluxBoundaryCondition(2.0).kind == BoundaryConditionKind.FLUX
        assert ZeroFluxBoundaryCondition().kind == BoundaryConditionKind.ZERO_FLUX

    def test_normal_flow_defaults_to_zero(self):
        bc = NormalFlowBoundaryCondition()
        assert bc.kind == BoundaryConditionKind.NORMAL_FLOW
        assert bc.condition == 0.0

    def test_value_requires_condition(self):
        with pytest.raises(ConfigurationError, match="requires a condition"):
            ValueBoundaryCondition(None)

    def test_callable_condition(self):
        bc = FluxBoundaryCondition(lambda a, b, grid: a + b)
        assert bc.is_callable
        assert not ValueBoundaryCondition(1.0).is_callable

    def test_repr(self):
        assert repr(ValueBoundaryCondition(2.0)) == "VALUE(2.0)"
        assert repr(PeriodicBoundaryCondition()) == "PERIODIC"


class TestFieldBoundaryConditions:
    """Tests for defaults and validation against grid topology."""

    def test_defaults_center(self, box_grid):
        bcs = FieldBoundaryConditions.default(box_grid, (Center, Center, Center))
        assert bcs.west.kind == BoundaryConditionKind.ZERO_FLUX
        assert bcs.south.is_periodic and bcs.north.is_periodic
        assert bcs.top.kind == BoundaryConditionKind.ZERO_FLUX

    def test_defaults_face(self, box_grid):
        bcs = FieldBoundaryConditions.default(box_grid, (Face, Center, Center))
        assert bcs.west.kind == BoundaryConditionKind.NORMAL_FLOW
        assert bcs.east.condition == 0.0

    def test_defaults_reduced_axis_absent(self, box_grid):
        bcs = FieldBoundaryConditions.default(box_grid, (Center, Center, None))
        assert bcs.bottom is None and bcs.top is None

    def test_overrides(self, box_grid):
        bcs = FieldBoundaryConditions.default(
            box_grid, (Center, Center, Center), top=FluxBoundaryCondition(1e-4)
        )
        assert bcs.top.kind == BoundaryConditionKind.FLUX
        assert bcs.bottom.kind == BoundaryConditionKind.ZERO_FLUX

    def test_unknown_side(self, box_grid):
        with pytest.raises(ConfigurationError, match="Unknown boundary side"):
            FieldBoundaryConditions.default(box_grid, (Center, Center, Center), up=None)

    def test_pair(self, box_grid):
        bcs = FieldBoundaryConditions.default(box_grid, (Center, Center, Center))
        left, right = bcs.pair("y")
        assert left is bcs.south and right is bcs.north

    def test_periodic_on_bounded_axis_rejected(self, box_grid):
        bcs = FieldBoundaryConditions.default(
            box_grid, (Center, Center, Center),
            west=PeriodicBoundaryCondition(), east=PeriodicBoundaryCondition(),
        )
        with pytest.raises(ConfigurationError, match="Periodic boundary condition on Bounded"):
            bcs.validate(box_grid, (Center, Center, Center))

    def test_flux_on_periodic_axis_rejected(self, box_grid):
        bcs = FieldBoundaryConditions.default(
            box_grid, (Center, Center, Center), south=FluxBoundaryCondition(1.0)
        )
        with pytest.raises(ConfigurationError, match="requires Periodic"):
            bcs.validate(box_grid, (Center, Center, Center))

    def test_condition_on_reduced_axis_rejected(self, box_grid):
        bcs = FieldBoundaryConditions.default(
            box_grid, (Center, Center, None), top=ValueBoundaryCondition(0.0)
        )
        with pytest.raises(ConfigurationError, match="reduced"):
            bcs.validate(box_grid, (Center, Center, None))


class TestEvaluateCondition:
    """Tests for condition evaluation over the padded tangential extent."""

    def test_constant(self, box_grid):
        values = evaluate_condition(ValueBoundaryCondition(3.0), box_grid, 0, (Center, Center, Center))
        # Tangential axes of x are (y, z): (3 + 2, 2 + 2)
        assert values.shape == (5, 4)
        assert np.all(values == 3.0)

    def test_callable_receives_indices_and_args(self, box_grid):
        bc = FluxBoundaryCondition(lambda j, k, grid, t: t * (10 * j + k))
        values = evaluate_condition(bc, box_grid, 0, (Center, Center, Center), 2.0)
        # element [j + 1, k + 1] holds index (j, k)
        assert values[1, 1] == 0.0
        assert values[3, 2] == 2.0 * (10 * 2 + 1)
        assert values[0, 0] == 2.0 * (10 * -1 - 1)

    def test_array_padded_periodic_and_edge(self, box_grid):
        arr = np.arange(6, dtype=float).reshape(3, 2)
        values = evaluate_condition(ValueBoundaryCondition(arr), box_grid, 0, (Center, Center, Center))
        np.testing.assert_array_equal(values[1:4, 1:3], arr)
        # y is periodic: wrap; z is bounded: repeat edge
        np.testing.assert_array_equal(values[0, 1:3], arr[2])
        np.testing.assert_array_equal(values[1:4, 0], arr[:, 0])

    def test_array_wrong_shape(self, box_grid):
        with pytest.raises(ConfigurationError, match="shape"):
            evaluate_condition(
                ValueBoundaryCondition(np.zeros((2, 2))), box_grid, 0, (Center, Center, Center)
            )
