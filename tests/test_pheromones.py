"""Tests for antrail.pheromones — fields, evaporation, diffusion, buffering."""

import numpy as np
import pytest
from numpy.random import Generator

from antrail.colony.vectors import Vec2
from antrail.pheromones.buffer import DepositBuffer
from antrail.pheromones.diffusion import diffuse
from antrail.pheromones.fields import (
    PheromoneChannel,
    PheromoneField,
    PheromoneLayer,
    PheromoneParams,
)
from antrail.world.cell import CellKind
from antrail.world.world import World

HOME = PheromoneChannel.HOME
FOOD = PheromoneChannel.FOOD


def _assert_invariants(field: PheromoneField) -> None:
    walls = field.world.wall_mask()
    for channel in PheromoneChannel:
        grid = field.get_layer(channel)
        age = field.get_age(channel)
        assert np.all(grid >= 0.0)
        assert np.all(grid <= field.params.max_pheromone)
        assert np.array_equal(grid == 0.0, age == 0.0)
        assert np.all(grid[walls] == 0.0)
        assert np.all(age[walls] == 0.0)


def _walled_world(rng: Generator, size: int = 10) -> World:
    world = World.create(size, size)
    for _ in range(size):
        x, y = (int(v) for v in rng.integers(1, size - 1, size=2))
        if world.cell_kind((x, y)) is CellKind.EMPTY:
            world.set_cell_kind((x, y), CellKind.WALL)
    return world


class TestPheromoneField:
    """Tests for PheromoneField setup and point operations."""

    def test_both_channels_created(self, open_field: PheromoneField) -> None:
        assert set(open_field.layers) == {HOME, FOOD}
        assert open_field.get_layer(HOME).shape == (5, 5)

    def test_initial_concentrations_zero(self, open_field: PheromoneField) -> None:
        for layer in open_field.layers.values():
            assert np.all(layer.grid == 0.0)
            assert np.all(layer.age == 0.0)

    def test_deposit_and_sample(self, open_field: PheromoneField) -> None:
        open_field.deposit((2, 2), FOOD, 1.0)
        assert open_field.sample((2, 2), FOOD) == 1.0
        assert open_field.sample((2, 2), HOME) == 0.0

    def test_deposit_clamps_to_max(self, open_field: PheromoneField) -> None:
        open_field.deposit((1, 1), HOME, 0.8)
        open_field.deposit((1, 1), HOME, 0.8)
        assert open_field.sample((1, 1), HOME) == open_field.params.max_pheromone

    def test_grid_is_indexed_row_major(self, open_field: PheromoneField) -> None:
        open_field.deposit((3, 1), HOME, 0.5)
        assert open_field.get_layer(HOME)[1, 3] == 0.5

    def test_out_of_bounds_is_ignored(self, open_field: PheromoneField) -> None:
        open_field.deposit((5, 0), FOOD, 1.0)
        open_field.deposit((-1, 2), FOOD, 1.0)
        assert open_field.max_value(FOOD) == 0.0
        assert open_field.sample((5, 0), FOOD) == 0.0
        assert open_field.age_at((-1, 2), FOOD) == 0.0

    def test_wall_cells_never_hold_pheromone(
        self,
        open_world: World,
        open_field: PheromoneField,
    ) -> None:
        open_world.set_cell_kind((1, 1), CellKind.WALL)
        open_field.deposit((1, 1), HOME, 1.0)
        assert open_field.sample((1, 1), HOME) == 0.0
        assert open_field.get_layer(HOME)[1, 1] == 0.0

    def test_new_wall_reads_zero_and_is_cleared_on_tick(
        self,
        open_world: World,
        open_field: PheromoneField,
    ) -> None:
        open_field.deposit((3, 3), FOOD, 1.0)
        open_world.set_cell_kind((3, 3), CellKind.WALL)
        assert open_field.sample((3, 3), FOOD) == 0.0
        open_field.tick(0.1)
        assert open_field.get_layer(FOOD)[3, 3] == 0.0
        assert open_field.get_age(FOOD)[3, 3] == 0.0

    def test_sample_at_world_position(self, open_field: PheromoneField) -> None:
        open_field.deposit((2, 3), HOME, 0.7)
        # cell (2, 3) spans x 16..24, y 24..32 with 8-unit cells
        assert open_field.sample_at_world_position(Vec2(20.0, 25.0), HOME) == 0.7
        assert open_field.sample_at_world_position(Vec2(-1.0, 25.0), HOME) == 0.0

    def test_set_value_clamps(self, open_field: PheromoneField) -> None:
        open_field.set_value((0, 0), FOOD, 5.0)
        open_field.set_value((0, 1), FOOD, -1.0)
        assert open_field.sample((0, 0), FOOD) == 1.0
        assert open_field.sample((0, 1), FOOD) == 0.0

    def test_clear(self, open_field: PheromoneField) -> None:
        open_field.deposit((1, 2), HOME, 0.5)
        open_field.deposit((2, 1), FOOD, 0.5)
        open_field.tick(1.0)
        open_field.clear()
        for channel in PheromoneChannel:
            assert open_field.max_value(channel) == 0.0
            assert np.all(open_field.get_age(channel) == 0.0)

    def test_negative_dt_rejected(self, open_field: PheromoneField) -> None:
        with pytest.raises(ValueError):
            open_field.tick(-0.1)

    def test_zero_dt_rejected_and_field_untouched(
        self,
        open_field: PheromoneField,
    ) -> None:
        open_field.deposit((2, 2), FOOD, 1.0)
        with pytest.raises(ValueError):
            open_field.tick(0.0)
        assert open_field.elapsed == 0.0
        assert open_field.sample((2, 2), FOOD) == 1.0

    def test_fresh_deposit_has_age_after_smallest_tick(
        self,
        open_field: PheromoneField,
    ) -> None:
        open_field.deposit((2, 2), FOOD, 1.0)
        open_field.tick(1e-9)
        values = open_field.get_layer(FOOD)
        ages = open_field.get_age(FOOD)
        assert values[2, 2] > 0.0
        assert ages[2, 2] > 0.0
        assert np.array_equal(values == 0.0, ages == 0.0)

    def test_test_pattern_peaks_at_nest(self, small_field: PheromoneField) -> None:
        small_field.create_test_pattern()
        home = small_field.get_layer(HOME)
        assert home[10, 10] == home.max()
        assert small_field.sample((10, 10), HOME) == pytest.approx(1.0)
        assert small_field.max_value(FOOD) > 0.0
        _assert_walls_empty(small_field)


def _assert_walls_empty(field: PheromoneField) -> None:
    walls = field.world.wall_mask()
    for channel in PheromoneChannel:
        assert np.all(field.get_layer(channel)[walls] == 0.0)


class TestPheromoneParams:
    """Tests for parameter validation."""

    def test_defaults(self) -> None:
        p = PheromoneParams()
        assert p.max_pheromone == 1.0
        assert p.pheromone_threshold == 0.05

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"evaporation_rate": -0.1},
            {"diffusion_rate": -1.0},
            {"max_pheromone": 0.0},
            {"pheromone_threshold": 1.0},
            {"max_age": 0.0},
        ],
    )
    def test_invalid_values_rejected(self, kwargs: dict[str, float]) -> None:
        with pytest.raises(ValueError):
            PheromoneParams(**kwargs)


class TestEvaporation:
    """Tests for evaporation, threshold collapse and ageing."""

    def test_evaporation_is_linear_in_dt(self, open_world: World) -> None:
        params = PheromoneParams(evaporation_rate=0.5, diffusion_rate=0.0)
        field = PheromoneField(world=open_world, params=params)
        field.deposit((2, 2), FOOD, 1.0)
        field.tick(1.0)
        assert field.sample((2, 2), FOOD) == pytest.approx(0.5)

    def test_sub_threshold_value_snaps_to_zero(self, open_world: World) -> None:
        params = PheromoneParams(evaporation_rate=0.02, diffusion_rate=0.0)
        field = PheromoneField(world=open_world, params=params)
        field.deposit((1, 1), HOME, 0.06)
        field.tick(1.0)
        assert field.sample((1, 1), HOME) == 0.0
        assert field.age_at((1, 1), HOME) == 0.0

    def test_age_grows_and_is_capped(self, open_world: World) -> None:
        params = PheromoneParams(evaporation_rate=0.0, diffusion_rate=0.0, max_age=2.0)
        field = PheromoneField(world=open_world, params=params)
        field.deposit((4, 4), FOOD, 1.0)
        field.tick(1.0)
        assert field.age_at((4, 4), FOOD) == 1.0
        for _ in range(4):
            field.tick(1.0)
        assert field.age_at((4, 4), FOOD) == 2.0

    def test_deposit_resets_age(self, open_world: World) -> None:
        params = PheromoneParams(evaporation_rate=0.0, diffusion_rate=0.0)
        field = PheromoneField(world=open_world, params=params)
        field.deposit((0, 4), HOME, 0.5)
        field.tick(3.0)
        assert field.age_at((0, 4), HOME) == 3.0
        field.deposit((0, 4), HOME, 0.1)
        assert field.age_at((0, 4), HOME) == 0.0

    def test_isolated_cell_decays_monotonically_to_zero(self) -> None:
        world = World(width=3, height=3)
        for y in range(3):
            for x in range(3):
                if (x, y) != (1, 1):
                    world.set_cell_kind((x, y), CellKind.WALL)
        params = PheromoneParams(evaporation_rate=0.1, diffusion_rate=0.5)
        field = PheromoneField(world=world, params=params)
        field.deposit((1, 1), FOOD, 1.0)

        previous = field.sample((1, 1), FOOD)
        while previous > 0.0:
            field.tick(1.0)
            current = field.sample((1, 1), FOOD)
            assert current < previous
            previous = current
        for _ in range(3):
            field.tick(1.0)
            assert field.sample((1, 1), FOOD) == 0.0


class TestDiffusion:
    """Tests for gradient-proportional diffusion."""

    def test_point_source_spreads_to_cardinal_neighbours(
        self,
        open_world: World,
    ) -> None:
        params = PheromoneParams(evaporation_rate=0.0, diffusion_rate=0.1)
        field = PheromoneField(world=open_world, params=params)
        field.deposit((2, 2), HOME, 1.0)
        field.tick(1.0)
        assert field.sample((2, 2), HOME) == pytest.approx(0.6)
        for pos in ((1, 2), (3, 2), (2, 1), (2, 3)):
            assert field.sample(pos, HOME) == pytest.approx(0.1)
            assert field.age_at(pos, HOME) == 1.0
        assert field.sample((1, 1), HOME) == 0.0
        assert field.get_layer(HOME).sum() == pytest.approx(1.0)

    def test_walls_block_diffusion(self, open_world: World) -> None:
        open_world.set_cell_kind((3, 2), CellKind.WALL)
        params = PheromoneParams(evaporation_rate=0.0, diffusion_rate=0.1)
        field = PheromoneField(world=open_world, params=params)
        field.deposit((2, 2), FOOD, 1.0)
        field.tick(1.0)
        assert field.sample((2, 2), FOOD) == pytest.approx(0.7)
        assert field.get_layer(FOOD)[2, 3] == 0.0

    def test_gradient_direction_preserved(self) -> None:
        world = World(width=6, height=1)
        params = PheromoneParams(evaporation_rate=0.0, diffusion_rate=0.2)
        field = PheromoneField(world=world, params=params)
        for x, value in enumerate((1.0, 0.8, 0.6, 0.4, 0.2, 0.1)):
            field.set_value((x, 0), HOME, value)
        for _ in range(5):
            field.tick(0.5)
            row = field.get_layer(HOME)[0]
            assert np.all(np.diff(row) <= 0.0)

    def test_never_creates_new_maxima(self, rng: Generator) -> None:
        for _ in range(20):
            source = rng.uniform(0.0, 1.0, size=(7, 9))
            layer = PheromoneLayer(
                channel=HOME,
                grid=source.copy(),
                age=np.zeros_like(source),
            )
            open_cells = rng.random(size=source.shape) > 0.2
            source[~open_cells] = 0.0
            layer.grid[~open_cells] = 0.0

            # Coefficient far above the cap to exercise the limit.
            diffuse(
                layer,
                source,
                coefficient=10.0,
                open_cells=open_cells,
                threshold=0.05,
            )

            padded = np.pad(source, 1, constant_values=-np.inf)
            neighbourhood = np.max(
                [
                    padded[1:-1, 1:-1],
                    padded[:-2, 1:-1],
                    padded[2:, 1:-1],
                    padded[1:-1, :-2],
                    padded[1:-1, 2:],
                ],
                axis=0,
            )
            assert np.all(layer.grid <= neighbourhood + 1e-12)
            assert np.all(layer.grid >= 0.0)

    def test_zero_rate_is_a_no_op(self) -> None:
        grid = np.zeros((4, 4))
        grid[1, 1] = 1.0
        layer = PheromoneLayer(channel=FOOD, grid=grid.copy(), age=np.zeros((4, 4)))
        diffuse(
            layer,
            grid,
            coefficient=0.0,
            open_cells=np.ones((4, 4), dtype=bool),
            threshold=0.05,
        )
        assert np.array_equal(layer.grid, grid)


class TestFieldProperties:
    """Randomised checks of the field-wide invariants."""

    def test_invariants_hold_after_every_tick(self, rng: Generator) -> None:
        world = _walled_world(rng)
        params = PheromoneParams(evaporation_rate=0.05, diffusion_rate=0.5)
        field = PheromoneField(world=world, params=params)
        for _ in range(60):
            for _ in range(5):
                pos = (int(rng.integers(0, 10)), int(rng.integers(0, 10)))
                channel = HOME if rng.random() < 0.5 else FOOD
                field.deposit(pos, channel, float(rng.uniform(0.0, 0.6)))
            field.tick(float(rng.uniform(0.01, 0.5)))
            _assert_invariants(field)

    def test_channels_are_independent(self, rng: Generator) -> None:
        world = _walled_world(rng)
        field = PheromoneField(
            world=world,
            params=PheromoneParams(evaporation_rate=0.01, diffusion_rate=0.3),
        )
        for y in range(10):
            for x in range(10):
                field.deposit((x, y), HOME, float(rng.uniform(0.0, 1.0)))
        field.tick(0.2)
        home_before = field.get_layer(HOME).copy()
        home_age_before = field.get_age(HOME).copy()

        for _ in range(200):
            pos = (int(rng.integers(0, 10)), int(rng.integers(0, 10)))
            field.deposit(pos, FOOD, float(rng.uniform(0.0, 1.0)))
            assert np.array_equal(field.get_layer(HOME), home_before)
            assert np.array_equal(field.get_age(HOME), home_age_before)

        # Ticking is also per channel: HOME evolves exactly as it would alone.
        alone = PheromoneField(world=world, params=field.params)
        alone.layers[HOME].grid[:] = home_before
        alone.layers[HOME].age[:] = home_age_before
        field.tick(0.2)
        alone.tick(0.2)
        assert np.array_equal(field.get_layer(HOME), alone.get_layer(HOME))
        assert np.array_equal(field.get_age(HOME), alone.get_age(HOME))


class TestDepositBuffer:
    """Tests for deferred, order-independent deposits."""

    def test_deposits_wait_for_flush(self, open_field: PheromoneField) -> None:
        buffer = DepositBuffer()
        buffer.deposit((1, 1), HOME, 0.2)
        buffer.deposit((1, 1), HOME, 0.3)
        buffer.deposit((1, 1), FOOD, 0.1)
        assert len(buffer) == 2
        assert open_field.sample((1, 1), HOME) == 0.0

        assert buffer.flush(open_field) == 2
        assert len(buffer) == 0
        assert open_field.sample((1, 1), HOME) == pytest.approx(0.5)
        assert open_field.sample((1, 1), FOOD) == pytest.approx(0.1)

    def test_permutations_give_identical_field(self, rng: Generator) -> None:
        world = _walled_world(rng)
        params = PheromoneParams(evaporation_rate=0.02, diffusion_rate=0.4)
        deposits = [
            (
                (int(rng.integers(0, 10)), int(rng.integers(0, 10))),
                HOME if rng.random() < 0.5 else FOOD,
                float(rng.uniform(0.0, 0.4)),
            )
            for _ in range(300)
        ]

        results = []
        for order in (np.arange(len(deposits)), rng.permutation(len(deposits))):
            field = PheromoneField(world=world, params=params)
            buffer = DepositBuffer()
            for i in order:
                pos, channel, amount = deposits[i]
                buffer.deposit(pos, channel, amount)
            buffer.flush(field)
            field.tick(0.1)
            results.append(field)

        first, second = results
        for channel in PheromoneChannel:
            assert np.array_equal(first.get_layer(channel), second.get_layer(channel))
            assert np.array_equal(first.get_age(channel), second.get_age(channel))
