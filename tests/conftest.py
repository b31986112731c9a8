import pytest

from junction_sim.config import SimulationConfig
from junction_sim.model.types import Direction
from junction_sim.model.vehicles import Vehicle


@pytest.fixture
def make_vehicle():
    def _make(vid=0, x=0.0, y=0.0, heading=0.0, path=((2000.0, 0.0),), max_speed=2.0,
              speed=0.0, entry=Direction.WEST, exit=Direction.EAST):
        return Vehicle(
            id=vid,
            x=x,
            y=y,
            heading=heading,
            path=path,
            max_speed=max_speed,
            entry=entry,
            exit=exit,
            speed=speed,
        )
    return _make


@pytest.fixture
def quiet_config():
    """No spawning; vehicles are placed by hand."""
    return SimulationConfig(spawn_rate=0.0)
