# Libraries necessary for core functionality:
import numpy as np
from scipy import linalg

from .exceptions import NotTrainedError, NumericalInstabilityError, ShapeMismatchError
from .weights import generate_weights


"""
This Python file contains the primary class that constitutes a leaky echo-state network. Random-weight generation,
the error types and the forecast metrics are kept in separate files. The network is trained once on a pair of
input/target sequences by ridge regression, and then forecasts either from the point where training stopped or from a
cold (all-zero) start.

"""

# Upper bound on the length of a single training sequence.
MAX_TIMESTEPS = 1_000_000

ESN_PARAMS = {
    "Ni": "Number of input features.",
    "No": "Number of output features.",
    "Nr": "Number of reservoir neurons.",
    "sparsity": "Fraction of reservoir weights set to zero, in [0, 1].",
    "spectral_radius": "Spectral radius of the reservoir matrix, > 0.",
    "noise_level": "Amplitude of the uniform noise added to each state update, >= 0.",
    "leaking_rate": "Leak rate controlling state update speed, in (0, 1].",
    "teacher_forcing": "Boolean flag to enable output-to-reservoir feedback.",
    "rng": "A numpy.random.Generator. Takes precedence over the seed.",
    "activation": "Elementwise activation applied to reservoir pre-activations (default numpy.tanh).",
    "seed": "Random seed for reproducibility, used when no generator is given.",
    "dtype": "Datatype of every matrix ('float32' or 'float64').",
    "verbosity": "An integer from 0 to 3. Increasingly provides system information at runtime.",
}


def esn_params_guide():
    """
    Prints the parameters accepted when initializing an Echo State Network.
    """
    print("\n **Parameters for ESN:**")
    for key, desc in ESN_PARAMS.items():
        print(f" - **{key}**: {desc}")


class EchoStateNetwork:

    def __init__(self,
                 Ni: int = 1,
                 No: int = 1,
                 Nr: int = 100,
                 sparsity: float = 0.95,
                 spectral_radius: float = 0.95,
                 noise_level: float = 0.001,
                 leaking_rate: float = 1.0,
                 teacher_forcing: bool = True,
                 rng: np.random.Generator = None,
                 activation=np.tanh,
                 seed: int = None,
                 dtype: str = "float64",
                 verbosity: int = 0):

        """
        Declaring this class fully initializes an Echo State Network: the reservoir, input and feedback weights are
        generated immediately and stay fixed for the lifetime of the network. Call esn_params_guide for a description
        of every parameter.

        :param rng: The generator used for weight initialization and for the noise of every state update. If omitted,
        one is created from the seed.
        :param activation: Must accept and return numpy arrays elementwise.
        :param dtype: Currently acceptable datatypes are float32 and float64.
        :param verbosity: An integer ranging from 0 to 3. Increasingly provides system information at runtime.
        """

        # Model structure:
        for name, value in (("Ni", Ni), ("No", No), ("Nr", Nr)):
            if int(value) != value or value < 1:
                raise ValueError(f"{name} must be a positive integer. Received: {value}")
        self.Ni = int(Ni)  # The number of features in the input vector.
        self.No = int(No)  # The number of features in the output vector.
        self.Nr = int(Nr)  # The number of neurons in the reservoir.

        # Model hyperparameters:
        if not 0.0 <= sparsity <= 1.0:
            raise ValueError(f"sparsity must lie in [0, 1]. Received: {sparsity}")
        if spectral_radius <= 0.0:
            raise ValueError(f"spectral_radius must be positive. Received: {spectral_radius}")
        if noise_level < 0.0:
            raise ValueError(f"noise_level cannot be negative. Received: {noise_level}")
        if not 0.0 < leaking_rate <= 1.0:
            raise ValueError(f"leaking_rate must lie in (0, 1]. Received: {leaking_rate}")
        self.sparsity = float(sparsity)
        self.spectral_radius = float(spectral_radius)
        self.noise_level = float(noise_level)
        self.leaking_rate = float(leaking_rate)

        # Parameters that affect the structure of the network.
        self.teacher_forcing = bool(teacher_forcing)
        if not callable(activation):
            raise ValueError("activation must be callable.")
        self.activation = activation

        # Determines random number generation.
        self.rng = rng if rng is not None else np.random.default_rng(seed)

        # Cementing the datatype which will be maintained across the whole series of computations.
        self.dtype = dtype
        if self.dtype not in ["float64", "float32"]:
            raise ValueError(f"Selected datatype must adhere to {['float64', 'float32']}")

        # Ensuring that the verbosity scale is an integer, and that it falls into the acceptable range.
        self.verbosity = min(max(int(verbosity), 0), 3)

        # The update rule is chosen once here and reused for every step.
        if self.teacher_forcing:
            self._update = self._update_with_feedback
        else:
            self._update = self._update_no_feedback

        # Model weights. These are never modified after initialization.
        self.W_res, self.W_in, self.W_fb = generate_weights(self.Nr, self.Ni, self.No,
                                                            sparsity=self.sparsity,
                                                            spectral_radius=self.spectral_radius,
                                                            rng=self.rng,
                                                            dtype=self.dtype,
                                                            verbosity=self.verbosity)
        for matrix in (self.W_res, self.W_in, self.W_fb):
            matrix.setflags(write=False)

        if self.verbosity > 0:
            print("Reservoir, input and feedback weights initialized.")

        if self.verbosity > 1:
            print("\n=== Matrix Shapes ===")
            print(f"{'Matrix':<15}{'Shape':<20}")
            print(f"{'-' * 35}")
            print(f"{'W_res':<15}{str(self.W_res.shape):<20}")
            print(f"{'W_in':<15}{str(self.W_in.shape):<20}")
            print(f"{'W_fb':<15}{str(self.W_fb.shape):<20}")

        # Readout, undefined until the network is trained.
        self.W_out = None

        # Later these will be required to continue forecasting from where training stopped.
        self.last_state = None
        self.last_input = None
        self.last_output = None

    @classmethod
    def from_params(cls, ESN_params: dict, **kwargs):
        """
        Builds a network from a dictionary of parameters. Keyword arguments override entries of the dictionary.

        :param ESN_params: Keys must be among those printed by esn_params_guide.
        """
        params = dict(ESN_params)
        params.update(kwargs)

        unknown = sorted(set(params) - set(ESN_PARAMS))
        if unknown:
            raise ValueError(f"Unrecognised ESN parameters: {unknown}. Expected a subset of {list(ESN_PARAMS)}.")

        return cls(**params)

    @property
    def is_trained(self) -> bool:
        return self.W_out is not None and self.last_state is not None

    def _noise(self) -> np.ndarray:
        return self.noise_level * (self.rng.random(self.Nr, dtype=self.dtype) - 0.5)

    def _update_no_feedback(self, prev_state, input_pattern, prev_output=None) -> np.ndarray:
        """
        Computes the candidate for the next reservoir state. No feedback is utilised here.

        :param prev_state: The preceding reservoir state, with shape (Nr,).
        :param input_pattern: The current input vector without a bias, with shape (Ni,).
        :param prev_output: Ignored. Present so both update rules share a signature.

        :return: The activated candidate state plus noise, with shape (Nr,).
        """

        nonlinear_contribution = self.W_in @ self._with_bias(input_pattern) + self.W_res @ prev_state

        return self.activation(nonlinear_contribution) + self._noise()

    def _update_with_feedback(self, prev_state, input_pattern, prev_output) -> np.ndarray:
        """
        Computes the candidate for the next reservoir state, including contributions from the previous output.

        :param prev_state: The preceding reservoir state, with shape (Nr,).
        :param input_pattern: The current input vector without a bias, with shape (Ni,).
        :param prev_output: The output at the preceding timestep, with shape (No,).

        :return: The activated candidate state plus noise, with shape (Nr,).
        """

        nonlinear_contribution = (self.W_in @ self._with_bias(input_pattern)
                                  + self.W_res @ prev_state
                                  + self.W_fb @ prev_output)

        return self.activation(nonlinear_contribution) + self._noise()

    def _integrate(self, prev_state, candidate) -> np.ndarray:
        return (1 - self.leaking_rate) * prev_state + self.leaking_rate * candidate

    def _with_bias(self, input_pattern) -> np.ndarray:
        return np.concatenate([np.ones(1, dtype=self.dtype), input_pattern])

    def _check_signals(self, inputs: np.ndarray, outputs: np.ndarray) -> tuple:
        if inputs.ndim != 2 or inputs.shape[0] != self.Ni:
            raise ShapeMismatchError(f"Input signal should have shape ({self.Ni}, timesteps). "
                                     f"Has shape: {inputs.shape}")

        if outputs.ndim != 2 or outputs.shape[0] != self.No:
            raise ShapeMismatchError(f"Output signal should have shape ({self.No}, timesteps). "
                                     f"Has shape: {outputs.shape}")

        if inputs.shape[1] != outputs.shape[1]:
            raise ShapeMismatchError(f"Mismatch in timesteps: Inputs have {inputs.shape[1]} timesteps, "
                                     f"while outputs have {outputs.shape[1]} timesteps.")

        if inputs.shape[1] == 0:
            raise ShapeMismatchError("Signals must contain at least one timestep.")

        if inputs.shape[1] > MAX_TIMESTEPS:
            raise MemoryError(f"Too many timesteps ({inputs.shape[1]}). At most {MAX_TIMESTEPS} are supported.")

        return inputs.astype(self.dtype), outputs.astype(self.dtype)

    @staticmethod
    def _handle_missing(inputs: np.ndarray, nan_handling) -> np.ndarray:
        """
        Replaces NaNs in the inputs. None leaves them untouched, 'zero' sets them to zero and 'interpolate' linearly
        interpolates each feature over time.
        """
        if nan_handling not in [None, "zero", "interpolate"]:
            raise ValueError(f"nan_handling must be None, 'zero' or 'interpolate'. Received: {nan_handling}")

        if nan_handling is None or not np.isnan(inputs).any():
            return inputs

        inputs = inputs.copy()

        if nan_handling == "zero":
            print("Warning: NaN values detected in inputs. Setting missing values to zero.")
            return np.nan_to_num(inputs, nan=0.0)

        print("Warning: NaN values detected in inputs. Applying interpolation to handle missing data.")
        timesteps = np.arange(inputs.shape[1])
        for i in range(inputs.shape[0]):  # Iterate over input dimensions (each feature separately)
            nan_mask = np.isnan(inputs[i, :])
            if nan_mask.all():
                inputs[i, :] = 0.0
            elif nan_mask.any():
                inputs[i, nan_mask] = np.interp(x=timesteps[nan_mask],
                                                xp=timesteps[~nan_mask],
                                                fp=inputs[i, ~nan_mask])
        return inputs

    def reservoir_states(self, inputs: np.ndarray, outputs: np.ndarray) -> np.ndarray:

        """
        Drives the reservoir with a pair of signals and records every state. The first state is the zero initial
        condition. When teacher forcing is enabled, the output of the previous timestep is fed back, taken from the
        supplied outputs rather than from any prediction.

        :param inputs: Input sequence with shape (Ni, timesteps).
        :param outputs: Target sequence with shape (No, timesteps).

        :return: Reservoir states with shape (Nr, timesteps).
        """

        inputs, outputs = self._check_signals(inputs, outputs)

        return self._collect_states(inputs, outputs)

    def _collect_states(self, inputs: np.ndarray, outputs: np.ndarray) -> np.ndarray:
        # Signals must already be validated and cast to the network dtype.
        timesteps = inputs.shape[1]
        states = np.zeros(shape=(self.Nr, timesteps), dtype=self.dtype)

        for t in range(1, timesteps):
            candidate = self._update(states[:, t - 1], inputs[:, t], outputs[:, t - 1])
            states[:, t] = self._integrate(states[:, t - 1], candidate)

        return states

    def extended_states(self, inputs: np.ndarray, states: np.ndarray) -> np.ndarray:
        """
        Stacks a row of ones, the inputs and the reservoir states into the (1 + Ni + Nr, timesteps) design matrix.
        """
        bias = np.ones((1, inputs.shape[1]), dtype=self.dtype)
        return np.vstack([bias, inputs.astype(self.dtype, copy=False), states])

    def train(self,
              inputs: np.ndarray,
              outputs: np.ndarray,
              discard: int = None,
              reg: float = 1e-8,
              nan_handling: str = None) -> np.ndarray:

        """
        Fits the readout weights by Tikhonov (ridge) regression over the reservoir states, and remembers the final
        state, input and output so that prediction can continue from there. Nothing is stored if training fails.

        :param inputs: Input sequence with shape (Ni, timesteps).
        :param outputs: Target sequence with shape (No, timesteps).
        :param discard: The number of initial timesteps excluded from the regression as they misrepresent the data.
        Defaults to min(timesteps // 10, 100).
        :param reg: The penalty applied to the readout weights to prevent any elements from dominating.
        :param nan_handling: None, 'zero' or 'interpolate'. Applied to the inputs before driving the reservoir.

        :return: The fitted outputs W_out @ X for the whole sequence, discarded transient included. (No, timesteps).
        """

        # ----- VALIDATION -----
        inputs, outputs = self._check_signals(inputs, outputs)
        timesteps = inputs.shape[1]

        if discard is None:
            discard = min(timesteps // 10, 100)
        if not 0 <= discard < timesteps:
            raise ValueError(f"discard must lie in [0, {timesteps}). Received: {discard}")
        if reg < 0:
            raise ValueError(f"The ridge penalty cannot be negative. Received: {reg}")

        inputs = self._handle_missing(inputs, nan_handling)

        # ----- STATE ACQUISITION -----
        states = self._collect_states(inputs, outputs)
        X = self.extended_states(inputs, states)

        if self.verbosity > 1:
            print(f"Design matrix has shape: {X.shape}. Discarding the first {discard} timesteps.")

        # ----- REGRESSION -----
        X_e = X[:, discard:]
        Y_e = outputs[:, discard:]

        if not (np.all(np.isfinite(X_e)) and np.all(np.isfinite(Y_e))):
            raise NumericalInstabilityError("The reservoir states or targets contain NaN or Inf values after the "
                                            "discarded transient. Consider nan_handling='zero' or 'interpolate'.")

        # Apply a penalty to the diagonal elements of XX^T. The pseudo-inverse keeps this defined when XX^T is
        # close to singular.
        regularized_XX_T = X_e @ X_e.T + reg * np.eye(X_e.shape[0], dtype=self.dtype)
        W_out = Y_e @ X_e.T @ linalg.pinv(regularized_XX_T)

        if not np.all(np.isfinite(W_out)):
            raise NumericalInstabilityError("Readout weights contain NaN or Inf values. Check the inputs, the ridge "
                                            "penalty and the spectral radius.")

        # Readout and checkpoint are committed together.
        self.W_out = W_out.astype(self.dtype)
        self.last_state = states[:, -1].copy()
        self.last_input = inputs[:, -1].copy()
        self.last_output = outputs[:, -1].copy()

        if self.verbosity > 0:
            print(f"Readout weight matrix shape: {self.W_out.shape}")

        return self.W_out @ X

    def predict(self, inputs: np.ndarray, cont: bool = True) -> np.ndarray:
        """
        Forecasts the outputs for a series of inputs. With teacher forcing, each forecast is fed back into the
        reservoir at the following timestep.

        The checkpoint stored by train is read but never updated, so every call with cont=True starts from the end of
        the most recent training sequence, whatever was predicted in between.

        :param inputs: A series of inputs with shape (Ni, timesteps).
        :param cont: Whether to continue from the final state, input and output seen in training. If False the
        reservoir starts from zeros.

        :return: The forecasts with shape (No, timesteps).
        """

        # ----- VALIDATION -----
        if not self.is_trained:
            raise NotTrainedError("Readout Weights are undefined. The network must be trained before it can forecast.")

        if inputs.ndim != 2 or inputs.shape[0] != self.Ni:
            raise ShapeMismatchError(f"Input signal should have shape ({self.Ni}, timesteps). "
                                     f"Input has shape {inputs.shape}")
        timesteps = inputs.shape[1]

        # ----- INITIALIZATION -----
        # Column 0 holds the warm-up values and is dropped from the result.
        Y_out = np.zeros(shape=(self.No, 1 + timesteps), dtype=self.dtype)

        if cont:
            warmup_input = self.last_input
            Y_out[:, 0] = self.last_output
            last_state = self.last_state.copy()
        else:
            warmup_input = np.zeros(self.Ni, dtype=self.dtype)
            last_state = np.zeros(self.Nr, dtype=self.dtype)

        input_signal = np.hstack([warmup_input.reshape(-1, 1), inputs.astype(self.dtype)])

        # ----- PREDICTION -----
        for t in range(1, timesteps + 1):
            input_pattern = input_signal[:, t]
            candidate = self._update(last_state, input_pattern, Y_out[:, t - 1])
            last_state = self._integrate(last_state, candidate)

            Y_out[:, t] = self.W_out @ np.concatenate([self._with_bias(input_pattern), last_state])

        return Y_out[:, 1:]
