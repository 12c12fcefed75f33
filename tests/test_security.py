# This script provides the security tests: malformed inputs, bad configuration and memory bounds.
import psutil
import pytest
import numpy as np
from pyLeakyESN import EchoStateNetwork, ESNError, ShapeMismatchError, esn_params_guide

# Establish a default set of parameters for the ESN. Some may be amended within functions.
default_params = {
    "Ni": 1,
    "No": 1,
    "Nr": 100,
    "sparsity": 0.9,
    "spectral_radius": 0.95,
    "noise_level": 0.0,
    "leaking_rate": 0.3,
    "teacher_forcing": False,
    "seed": 42,
}


# 3.1 - The model should raise a ShapeMismatchError if there is an issue with the shapes supplied.
# Here we test wrong dimensionality, wrong row counts and mismatched timesteps.
def test_invalid_inputs():
    esn = EchoStateNetwork.from_params(default_params)

    # Invalid input: Too few dimensions
    bad_input_1 = np.array([1.0, 2.0, 3.0])  # Should be 2D (Ni, timesteps)
    with pytest.raises(ShapeMismatchError):
        esn.train(bad_input_1, np.array([[1.0, 2.0, 3.0]]))

    # Invalid input: Too many dimensions
    bad_input_2 = np.random.rand(1, 10, 10)
    with pytest.raises(ShapeMismatchError):
        esn.train(bad_input_2, np.random.rand(1, 10))

    # Mismatched timesteps.
    with pytest.raises(ShapeMismatchError):
        esn.reservoir_states(np.random.rand(1, 10), np.random.rand(1, 11))

    # No timesteps at all.
    with pytest.raises(ShapeMismatchError):
        esn.train(np.zeros((1, 0)), np.zeros((1, 0)))

    # These are still ValueErrors for callers that expect them.
    with pytest.raises(ValueError):
        esn.train(np.random.rand(2, 10), np.random.rand(1, 10))

    assert esn.W_out is None


def test_invalid_prediction_inputs():
    esn = EchoStateNetwork.from_params(default_params, Ni=2)
    esn.train(np.random.rand(2, 50), np.random.rand(1, 50))

    with pytest.raises(ShapeMismatchError):
        esn.predict(np.random.rand(1, 10))
    with pytest.raises(ShapeMismatchError):
        esn.predict(np.random.rand(2))


@pytest.mark.parametrize("discard", [-1, 50, 51])
def test_invalid_discard(discard: int):
    esn = EchoStateNetwork.from_params(default_params)

    with pytest.raises(ValueError):
        esn.train(np.random.rand(1, 50), np.random.rand(1, 50), discard=discard)

    assert esn.W_out is None and esn.last_state is None


def test_invalid_training_options():
    esn = EchoStateNetwork.from_params(default_params)

    with pytest.raises(ValueError):
        esn.train(np.random.rand(1, 50), np.random.rand(1, 50), reg=-1.0)
    with pytest.raises(ValueError):
        esn.train(np.random.rand(1, 50), np.random.rand(1, 50), nan_handling="drop")

    assert not esn.is_trained


@pytest.mark.parametrize("override", [
    {"sparsity": 1.5},
    {"sparsity": -0.1},
    {"spectral_radius": 0.0},
    {"noise_level": -0.01},
    {"leaking_rate": 0.0},
    {"leaking_rate": 1.2},
    {"Nr": 0},
    {"Ni": 2.5},
    {"dtype": "float16"},
    {"activation": "tanh"},
])
def test_invalid_configuration(override: dict):
    with pytest.raises(ValueError):
        EchoStateNetwork.from_params(default_params, **override)


def test_unknown_parameter_rejected(capsys):
    with pytest.raises(ValueError, match="connectivity"):
        EchoStateNetwork.from_params({**default_params, "connectivity": 0.1})

    esn_params_guide()
    printed = capsys.readouterr().out
    for key in default_params:
        assert key in printed


def test_errors_share_a_base_class():
    esn = EchoStateNetwork.from_params(default_params)

    with pytest.raises(ESNError):
        esn.predict(np.zeros((1, 5)))
    with pytest.raises(ESNError):
        esn.train(np.zeros((2, 5)), np.zeros((1, 5)))


def test_verbosity_is_clamped(capsys):
    quiet = EchoStateNetwork.from_params(default_params, verbosity=-4)
    loud = EchoStateNetwork.from_params(default_params, verbosity=10)

    assert quiet.verbosity == 0
    assert loud.verbosity == 3
    assert "W_res" in capsys.readouterr().out


# 3.3 - Large datasets should not completely occupy available memory at runtime. We check that training on 50000
# timesteps doesn't go over 1 GB.
def test_memory_usage_training():
    params = default_params.copy()
    params["Nr"] = 500

    esn = EchoStateNetwork.from_params(params)

    large_timesteps = 50000
    large_inputs = np.random.rand(1, large_timesteps)
    large_targets = np.random.rand(1, large_timesteps)

    process = psutil.Process()
    mem_before = process.memory_info().rss / (1024 ** 2)  # Convert to MB

    esn.train(large_inputs, large_targets)

    mem_after = process.memory_info().rss / (1024 ** 2)  # Convert to MB
    mem_used = mem_after - mem_before

    assert mem_used < 1000, f"Memory usage too high! Used: {mem_used:.2f} MB"


# 3.4 - The model will stop running if the inputs are too large.
def test_oversized_input_handling():
    esn = EchoStateNetwork.from_params(default_params)

    extreme_timesteps = 1_000_001
    extreme_inputs = np.zeros((1, extreme_timesteps))
    extreme_targets = np.zeros((1, extreme_timesteps))

    with pytest.raises(MemoryError):
        esn.train(extreme_inputs, extreme_targets)

    assert esn.W_out is None
