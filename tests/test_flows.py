import random

import pytest

from loadrunner.config import ConfigurationError, LoadConfig
from loadrunner.flows import FlowSelector


def test_pattern_repeats():
    selector = FlowSelector.pattern([0, 1, 2])
    assert selector.sequence(7) == [0, 1, 2, 0, 1, 2, 0]


def test_default_is_always_zero():
    assert FlowSelector().sequence(5) == [0, 0, 0, 0, 0]


def test_weighted_is_balanced_and_reproducible():
    a = FlowSelector.weighted([1, 1], 1000, random.Random(1234)).sequence(1000)
    b = FlowSelector.weighted([1, 1], 1000, random.Random(1234)).sequence(1000)
    assert a == b
    assert set(a) == {0, 1}
    assert 400 <= a.count(0) <= 600


def test_weighted_follows_weights():
    seq = FlowSelector.weighted([1, 3], 4000, random.Random(99)).sequence(4000)
    assert 800 <= seq.count(0) <= 1200


def test_weighted_advances_shared_generator():
    rng = random.Random(5)
    FlowSelector.weighted([1, 1], 10, rng)
    untouched = random.Random(5)
    assert rng.random() != untouched.random()


def test_both_modes_is_configuration_error():
    with pytest.raises(ConfigurationError):
        FlowSelector(sequence=[0], pattern=[0])
    with pytest.raises(ConfigurationError):
        LoadConfig(script="w.py", flow_weights=(1, 1), flow_pattern=(0, 1))


def test_from_config_picks_mode():
    rng = random.Random(3)
    assert FlowSelector.from_config(LoadConfig(script="w.py"), rng).mode == "default"
    assert FlowSelector.from_config(LoadConfig(script="w.py", flow_pattern=(2,)), rng).flow_for(9) == 2
    cfg = LoadConfig(script="w.py", total_runs=4, flow_weights=(1, 2))
    assert FlowSelector.from_config(cfg, rng).mode == "weighted"


@pytest.mark.parametrize("weights", [[], [0, 0], [-1, 2]])
def test_bad_weights(weights):
    with pytest.raises(ConfigurationError):
        FlowSelector.weighted(weights, 3, random.Random(1))


def test_bad_pattern():
    with pytest.raises(ConfigurationError):
        FlowSelector.pattern([0, -1])
