"""
Feed-forward outcome classifier implemented on numpy.

The network is a stack of dense and dropout layers described by a
`Topology`. The default topology is

    dense(10 -> 32, relu) -> dropout(0.3) -> dense(32 -> 16, relu)
    -> dropout(0.3) -> dense(16 -> 3, softmax)

Training uses mini-batch Adam on categorical cross-entropy. Dropout is only
applied while fitting; `predict_proba` is a pure function of the stored
weights and never writes to them, so one instance can serve concurrent
callers once loaded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import numpy as np

from pitchside.config import CLASS_LABELS, FEATURE_NAMES
from pitchside.utils.logging_utils import get_logger

logger = get_logger(__name__)

ACTIVATIONS = ("relu", "softmax", "linear")
LAYER_KINDS = ("dense", "dropout")

# Probabilities are clipped before log() in the loss
_EPS = 1e-7


@dataclass(frozen=True)
class LayerSpec:
    """One layer of the network. Dense layers own a kernel and a bias."""

    kind: str
    name: str
    units: int = 0
    activation: str = "linear"
    rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        if self.kind == "dense":
            return {
                "kind": "dense",
                "name": self.name,
                "units": self.units,
                "activation": self.activation,
            }
        return {"kind": "dropout", "name": self.name, "rate": self.rate}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LayerSpec":
        return cls(
            kind=str(data["kind"]),
            name=str(data["name"]),
            units=int(data.get("units", 0)),
            activation=str(data.get("activation", "linear")),
            rate=float(data.get("rate", 0.0)),
        )


@dataclass(frozen=True)
class Topology:
    """Input dimensionality plus the ordered layer stack."""

    input_dim: int
    layers: Tuple[LayerSpec, ...]

    def __post_init__(self) -> None:
        if self.input_dim <= 0:
            raise ValueError(f"input_dim must be positive, got {self.input_dim}")
        dense = [layer for layer in self.layers if layer.kind == "dense"]
        if not dense or self.layers[-1].kind != "dense":
            raise ValueError("Topology must end with a dense layer.")
        names = [layer.name for layer in self.layers]
        if len(set(names)) != len(names):
            raise ValueError(f"Layer names must be unique: {names}")
        for layer in self.layers:
            if layer.kind not in LAYER_KINDS:
                raise ValueError(f"Unknown layer kind: {layer.kind}")
            if layer.kind == "dense":
                if layer.units <= 0:
                    raise ValueError(f"Layer {layer.name} needs positive units.")
                if layer.activation not in ACTIVATIONS:
                    raise ValueError(f"Unknown activation: {layer.activation}")
            elif not 0.0 <= layer.rate < 1.0:
                raise ValueError(f"Dropout rate must be in [0, 1): {layer.rate}")

    @property
    def output_dim(self) -> int:
        return self.layers[-1].units

    def weight_shapes(self) -> List[Tuple[str, Tuple[int, ...]]]:
        """Weight names and shapes, layer by layer, kernel before bias."""
        shapes: List[Tuple[str, Tuple[int, ...]]] = []
        fan_in = self.input_dim
        for layer in self.layers:
            if layer.kind != "dense":
                continue
            shapes.append((f"{layer.name}/kernel", (fan_in, layer.units)))
            shapes.append((f"{layer.name}/bias", (layer.units,)))
            fan_in = layer.units
        return shapes

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputDim": self.input_dim,
            "layers": [layer.to_dict() for layer in self.layers],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Topology":
        return cls(
            input_dim=int(data["inputDim"]),
            layers=tuple(LayerSpec.from_dict(layer) for layer in data["layers"]),
        )


def default_topology(
    input_dim: int = len(FEATURE_NAMES),
    n_classes: int = len(CLASS_LABELS),
    hidden_units: Sequence[int] = (32, 16),
    dropout: float = 0.3,
) -> Topology:
    """Build the standard dense/dropout stack ending in a softmax layer."""
    layers: List[LayerSpec] = []
    for i, units in enumerate(hidden_units, start=1):
        layers.append(LayerSpec("dense", f"dense_{i}", units=units, activation="relu"))
        layers.append(LayerSpec("dropout", f"dropout_{i}", rate=dropout))
    layers.append(
        LayerSpec(
            "dense",
            f"dense_{len(hidden_units) + 1}",
            units=n_classes,
            activation="softmax",
        )
    )
    return Topology(input_dim=input_dim, layers=tuple(layers))


def _activate(z: np.ndarray, activation: str) -> np.ndarray:
    if activation == "relu":
        return np.maximum(z, 0.0)
    if activation == "softmax":
        shifted = z - z.max(axis=1, keepdims=True)
        exp = np.exp(shifted)
        return exp / exp.sum(axis=1, keepdims=True)
    return z


def _activation_grad(z: np.ndarray, activation: str) -> np.ndarray:
    if activation == "relu":
        return (z > 0.0).astype(float)
    if activation == "linear":
        return np.ones_like(z)
    raise ValueError(f"No standalone gradient for activation '{activation}'.")


def categorical_cross_entropy(probs: np.ndarray, y: np.ndarray) -> float:
    """Mean cross-entropy of class indices ``y`` under ``probs``."""
    if len(y) == 0:
        return float("nan")
    picked = probs[np.arange(len(y)), y]
    return float(-np.mean(np.log(np.clip(picked, _EPS, 1.0))))


class OutcomeClassifier:
    """
    Dense feed-forward classifier mapping feature vectors to outcome
    probabilities (home win, draw, away win).

    Parameters
    ----------
    topology : Topology | None
        Network structure. Defaults to `default_topology()`.
    random_state : int | None
        Seed for weight initialization, dropout masks and batch shuffling.
    """

    def __init__(
        self,
        topology: Optional[Topology] = None,
        random_state: Optional[int] = None,
    ):
        self.topology = topology if topology is not None else default_topology()
        self._rng = np.random.default_rng(random_state)
        self._frozen = False
        self._params: Dict[str, np.ndarray] = {}
        self._init_params()

    def _init_params(self) -> None:
        # He-normal for relu layers, Glorot-uniform otherwise; zero biases.
        activations = {
            layer.name: layer.activation
            for layer in self.topology.layers
            if layer.kind == "dense"
        }
        for name, shape in self.topology.weight_shapes():
            layer_name, kind = name.split("/")
            if kind == "bias":
                self._params[name] = np.zeros(shape, dtype=float)
                continue
            fan_in, fan_out = shape
            if activations[layer_name] == "relu":
                values = self._rng.normal(0.0, np.sqrt(2.0 / fan_in), size=shape)
            else:
                limit = np.sqrt(6.0 / (fan_in + fan_out))
                values = self._rng.uniform(-limit, limit, size=shape)
            self._params[name] = values

    # ------------------------------------------------------------------
    # Weights
    # ------------------------------------------------------------------

    @property
    def weight_names(self) -> List[str]:
        return [name for name, _ in self.topology.weight_shapes()]

    def get_weights(self) -> List[Tuple[str, np.ndarray]]:
        """Copies of all weight tensors in traversal order."""
        return [(name, self._params[name].copy()) for name in self.weight_names]

    def set_weights(self, weights: Sequence[Tuple[str, np.ndarray]]) -> None:
        """
        Replace all weight tensors.

        Tensors are matched by name; every name of the topology must be
        present exactly once with the expected shape.

        Raises
        ------
        ValueError
            On missing, unexpected or mis-shaped tensors.
        """
        expected = dict(self.topology.weight_shapes())
        given: Dict[str, np.ndarray] = {}
        for name, values in weights:
            if name in given:
                raise ValueError(f"Duplicate weight tensor: {name}")
            given[name] = np.array(values, dtype=float)

        missing = [n for n in expected if n not in given]
        unexpected = [n for n in given if n not in expected]
        if missing or unexpected:
            raise ValueError(
                f"Weights do not match topology (missing={missing}, "
                f"unexpected={unexpected})"
            )
        for name, shape in expected.items():
            if given[name].shape != shape:
                raise ValueError(
                    f"Weight {name} has shape {given[name].shape}, expected {shape}"
                )

        self._params = {name: given[name] for name in expected}
        self._frozen = False

    def freeze(self) -> None:
        """Make the weight arrays read-only (inference only from now on)."""
        for arr in self._params.values():
            arr.setflags(write=False)
        self._frozen = True

    @property
    def is_frozen(self) -> bool:
        return self._frozen

    # ------------------------------------------------------------------
    # Inference
    # ------------------------------------------------------------------

    def _forward(
        self,
        X: np.ndarray,
        training: bool = False,
    ) -> Tuple[np.ndarray, List[Tuple[LayerSpec, Optional[np.ndarray], Optional[np.ndarray]]]]:
        a = X
        caches: List[Tuple[LayerSpec, Optional[np.ndarray], Optional[np.ndarray]]] = []
        for layer in self.topology.layers:
            if layer.kind == "dense":
                z = a @ self._params[f"{layer.name}/kernel"] + self._params[f"{layer.name}/bias"]
                caches.append((layer, a, z))
                a = _activate(z, layer.activation)
            else:
                mask = None
                if training and layer.rate > 0.0:
                    keep = 1.0 - layer.rate
                    mask = (self._rng.random(a.shape) < keep) / keep
                    a = a * mask
                caches.append((layer, mask, None))
        return a, caches

    def _check_input(self, X: Any) -> np.ndarray:
        X = np.atleast_2d(np.asarray(X, dtype=float))
        if X.ndim != 2 or X.shape[1] != self.topology.input_dim:
            raise ValueError(
                f"Expected input of shape (n, {self.topology.input_dim}), got {X.shape}"
            )
        return X

    def predict_proba(self, X: Any) -> np.ndarray:
        """
        Class probabilities for each row of ``X`` (dropout disabled).

        Returns
        -------
        np.ndarray
            Shape (n_samples, n_classes); rows sum to 1.
        """
        probs, _ = self._forward(self._check_input(X))
        return probs

    def predict(self, X: Any) -> np.ndarray:
        return np.argmax(self.predict_proba(X), axis=1)

    def evaluate(self, X: Any, y: Any) -> Tuple[float, float]:
        """Return (loss, accuracy) on class indices ``y``."""
        y = np.asarray(y, dtype=int)
        if len(y) == 0:
            return float("nan"), float("nan")
        probs = self.predict_proba(X)
        accuracy = float(np.mean(np.argmax(probs, axis=1) == y))
        return categorical_cross_entropy(probs, y), accuracy

    # ------------------------------------------------------------------
    # Training
    # ------------------------------------------------------------------

    def _backward(
        self,
        caches: List[Tuple[LayerSpec, Optional[np.ndarray], Optional[np.ndarray]]],
        probs: np.ndarray,
        Y: np.ndarray,
    ) -> Dict[str, np.ndarray]:
        # Softmax + cross-entropy: gradient w.r.t. the last pre-activation
        grad = (probs - Y) / Y.shape[0]
        grads: Dict[str, np.ndarray] = {}
        is_output = True
        for layer, cached, z in reversed(caches):
            if layer.kind == "dense":
                if not is_output:
                    grad = grad * _activation_grad(z, layer.activation)
                is_output = False
                kernel = f"{layer.name}/kernel"
                grads[kernel] = cached.T @ grad
                grads[f"{layer.name}/bias"] = grad.sum(axis=0)
                grad = grad @ self._params[kernel].T
            elif cached is not None:
                grad = grad * cached
        return grads

    def fit(
        self,
        X: Any,
        y: Any,
        *,
        epochs: int = 100,
        batch_size: int = 64,
        learning_rate: float = 1e-4,
        validation_data: Optional[Tuple[Any, Any]] = None,
        shuffle: bool = True,
        log_every: int = 20,
        beta1: float = 0.9,
        beta2: float = 0.999,
        epsilon: float = 1e-7,
    ) -> Dict[str, List[float]]:
        """
        Fit the network with mini-batch Adam.

        Parameters
        ----------
        X : array-like, shape (n_samples, input_dim)
        y : array-like of int, shape (n_samples,)
            Class indices in CLASS_LABELS order.
        validation_data : (X_val, y_val) | None
            Evaluated after every epoch when given.
        shuffle : bool
            Reshuffle the training rows every epoch.
        log_every : int
            Log progress every N epochs (0 disables).

        Returns
        -------
        dict
            Per-epoch history: loss, accuracy, val_loss, val_accuracy.
        """
        if self._frozen:
            raise RuntimeError("Cannot fit a frozen classifier.")
        if self.topology.layers[-1].activation != "softmax":
            raise ValueError("Training requires a softmax output layer.")

        X = self._check_input(X)
        y = np.asarray(y, dtype=int)
        if len(y) != X.shape[0]:
            raise ValueError(f"X has {X.shape[0]} rows but y has {len(y)} labels.")
        if batch_size <= 0:
            raise ValueError("batch_size must be positive.")

        n_samples = X.shape[0]
        Y = np.eye(self.topology.output_dim)[y]

        m = {name: np.zeros_like(p) for name, p in self._params.items()}
        v = {name: np.zeros_like(p) for name, p in self._params.items()}
        step = 0

        history: Dict[str, List[float]] = {
            "loss": [],
            "accuracy": [],
            "val_loss": [],
            "val_accuracy": [],
        }

        for epoch in range(1, epochs + 1):
            order = self._rng.permutation(n_samples) if shuffle else np.arange(n_samples)
            for start in range(0, n_samples, batch_size):
                idx = order[start:start + batch_size]
                probs, caches = self._forward(X[idx], training=True)
                grads = self._backward(caches, probs, Y[idx])
                step += 1
                for name, g in grads.items():
                    m[name] = beta1 * m[name] + (1.0 - beta1) * g
                    v[name] = beta2 * v[name] + (1.0 - beta2) * g * g
                    m_hat = m[name] / (1.0 - beta1**step)
                    v_hat = v[name] / (1.0 - beta2**step)
                    self._params[name] = self._params[name] - (
                        learning_rate * m_hat / (np.sqrt(v_hat) + epsilon)
                    )

            loss, acc = self.evaluate(X, y)
            history["loss"].append(loss)
            history["accuracy"].append(acc)
            if validation_data is not None:
                val_loss, val_acc = self.evaluate(*validation_data)
                history["val_loss"].append(val_loss)
                history["val_accuracy"].append(val_acc)

            if log_every and epoch % log_every == 0:
                if validation_data is not None:
                    logger.info(
                        "Epoch %d/%d - loss: %.4f - acc: %.2f%% - val_loss: %.4f - val_acc: %.2f%%",
                        epoch, epochs, loss, acc * 100,
                        history["val_loss"][-1], history["val_accuracy"][-1] * 100,
                    )
                else:
                    logger.info(
                        "Epoch %d/%d - loss: %.4f - acc: %.2f%%",
                        epoch, epochs, loss, acc * 100,
                    )

        return history
