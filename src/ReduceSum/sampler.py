"""No-U-Turn sampler with warmup adaptation.

One ``NUTSSampler`` runs one chain. The log density is any callable
``theta -> (lp, grad)``; the partial-sum threading lives in the kernel
behind it, so the sampler itself is strictly sequential.

Warmup follows Stan's defaults: dual averaging of the step size and a
windowed estimate of a diagonal inverse metric.
"""

import logging
import math
import time
from typing import Callable, Optional, Tuple

import numpy as np

from .datastructures import ChainTrace

log = logging.getLogger(__name__)

# Energy error at which a trajectory is flagged divergent
MAX_DELTA_H = 1000.0


class SamplerError(RuntimeError):
    """Raised when a chain cannot be started or continued."""


class DualAveraging:
    """Nesterov dual averaging of log step size (Hoffman & Gelman, 2014)."""

    def __init__(
        self,
        step_size: float,
        delta: float = 0.8,
        gamma: float = 0.05,
        t0: float = 10.0,
        kappa: float = 0.75,
    ):
        self.delta = delta
        self.gamma = gamma
        self.t0 = t0
        self.kappa = kappa
        self.restart(step_size)

    def restart(self, step_size: float):
        self.mu = math.log(10.0 * step_size)
        self.counter = 0
        self.h_bar = 0.0
        self.log_step_bar = 0.0

    def update(self, accept_stat: float) -> float:
        """Feed one accept statistic, return the next step size."""
        self.counter += 1
        accept_stat = min(1.0, accept_stat)

        eta = 1.0 / (self.counter + self.t0)
        self.h_bar = (1.0 - eta) * self.h_bar + eta * (self.delta - accept_stat)

        log_step = self.mu - math.sqrt(self.counter) / self.gamma * self.h_bar
        x_eta = self.counter ** (-self.kappa)
        self.log_step_bar = x_eta * log_step + (1.0 - x_eta) * self.log_step_bar
        return math.exp(log_step)

    def final_step_size(self) -> float:
        return math.exp(self.log_step_bar)


class WindowedAdaptation:
    """Windowed diagonal metric estimation with Stan's buffer schedule.

    Parameters
    ----------
    n_warmup : int
        Number of warmup iterations.
    n_params : int
        Dimension of the parameter vector.
    init_buffer, term_buffer, base_window : int
        Fast step-size-only phases at the start and end of warmup, and the
        size of the first slow metric window (doubled after every window).
    """

    def __init__(
        self,
        n_warmup: int,
        n_params: int,
        init_buffer: int = 75,
        term_buffer: int = 50,
        base_window: int = 25,
    ):
        self.n_warmup = n_warmup
        self.n_params = n_params
        self.enabled = n_warmup >= 20

        if init_buffer + base_window + term_buffer > n_warmup:
            init_buffer = int(0.15 * n_warmup)
            term_buffer = int(0.1 * n_warmup)
            base_window = n_warmup - (init_buffer + term_buffer)
            if self.enabled:
                log.debug(
                    "Warmup too short for default windows, using "
                    f"init_buffer={init_buffer}, base_window={base_window}, term_buffer={term_buffer}"
                )

        self.init_buffer = init_buffer
        self.term_buffer = term_buffer
        self.window_size = base_window
        self.next_window = init_buffer + base_window - 1
        self.counter = 0
        self._restart_estimator()

    def _restart_estimator(self):
        self._n = 0
        self._mean = np.zeros(self.n_params)
        self._m2 = np.zeros(self.n_params)

    def _in_window(self) -> bool:
        return (
            self.counter >= self.init_buffer
            and self.counter < self.n_warmup - self.term_buffer
            and self.counter != self.n_warmup
        )

    def _window_ends(self) -> bool:
        return self.counter == self.next_window and self.counter != self.n_warmup

    def _compute_next_window(self):
        last = self.n_warmup - self.term_buffer - 1
        if self.next_window == last:
            return
        self.window_size *= 2
        self.next_window = self.counter + self.window_size
        if self.next_window != last:
            if self.next_window + 2 * self.window_size >= self.n_warmup - self.term_buffer:
                self.next_window = last

    def learn(self, theta: np.ndarray) -> Optional[np.ndarray]:
        """Record a warmup draw. Returns a new inverse metric at window ends."""
        if not self.enabled:
            return None

        updated = None
        if self._in_window():
            self._n += 1
            delta = theta - self._mean
            self._mean += delta / self._n
            self._m2 += delta * (theta - self._mean)

        if self._window_ends():
            self._compute_next_window()
            n = self._n
            variance = self._m2 / (n - 1) if n > 1 else np.ones(self.n_params)
            updated = (n / (n + 5.0)) * variance + 1e-3 * (5.0 / (n + 5.0))
            self._restart_estimator()

        self.counter += 1
        return updated


class NUTSSampler:
    """No-U-Turn sampler with a diagonal Euclidean metric.

    Parameters
    ----------
    log_density : callable
        ``theta -> (lp, grad)``.
    n_params : int
        Dimension of ``theta``.
    rng : np.random.Generator
        Random stream of this chain.
    step_size : float, optional
        Initial (or fixed, without adaptation) step size. Found by a
        doubling heuristic when omitted.
    inv_metric : array, optional
        Diagonal inverse metric. Defaults to ones.
    max_treedepth : int
        Maximum number of trajectory doublings per iteration.
    target_accept : float
        Dual averaging target for the accept statistic.
    """

    def __init__(
        self,
        log_density: Callable[[np.ndarray], Tuple[float, np.ndarray]],
        n_params: int,
        rng: np.random.Generator,
        step_size: Optional[float] = None,
        inv_metric: Optional[np.ndarray] = None,
        max_treedepth: int = 10,
        target_accept: float = 0.8,
    ):
        self.log_density = log_density
        self.n_params = n_params
        self.rng = rng
        self.max_treedepth = max_treedepth
        self.target_accept = target_accept

        if inv_metric is None:
            inv_metric = np.ones(n_params)
        inv_metric = np.asarray(inv_metric, dtype=np.float64)
        if inv_metric.shape != (n_params,) or np.any(inv_metric <= 0):
            raise ValueError(
                f"inv_metric must be a positive vector of length {n_params}, got {inv_metric!r}"
            )
        if step_size is not None and not step_size > 0:
            raise ValueError(f"step_size must be positive, got {step_size!r}")

        self.inv_metric = inv_metric
        self.step_size = step_size
        self._n_leapfrog = 0

    # ------------------------------------------------------------------
    # Hamiltonian dynamics
    # ------------------------------------------------------------------

    def _evaluate(self, theta: np.ndarray) -> Tuple[float, np.ndarray]:
        lp, grad = self.log_density(theta)
        if not np.isfinite(lp) or not np.all(np.isfinite(grad)):
            return -np.inf, np.zeros(self.n_params)
        return lp, grad

    def _leapfrog(self, theta, r, grad, lp, step_size):
        r = r + 0.5 * step_size * grad
        theta = theta + step_size * self.inv_metric * r
        lp, grad = self._evaluate(theta)
        r = r + 0.5 * step_size * grad
        self._n_leapfrog += 1
        return theta, r, grad, lp

    def _joint(self, lp: float, r: np.ndarray) -> float:
        return lp - 0.5 * float(np.dot(r, self.inv_metric * r))

    def _sample_momentum(self) -> np.ndarray:
        return self.rng.standard_normal(self.n_params) / np.sqrt(self.inv_metric)

    def _no_uturn(self, minus, plus) -> bool:
        span = plus[0] - minus[0]
        return (
            np.dot(span, self.inv_metric * minus[1]) >= 0
            and np.dot(span, self.inv_metric * plus[1]) >= 0
        )

    def find_reasonable_step_size(self, theta: np.ndarray, lp: float, grad: np.ndarray) -> float:
        """Double or halve the step size until one leapfrog step crosses 0.8 acceptance."""
        step_size = 1.0 if self.step_size is None else self.step_size
        r = self._sample_momentum()
        joint0 = self._joint(lp, r)

        _, r1, _, lp1 = self._leapfrog(theta, r, grad, lp, step_size)
        delta = self._joint(lp1, r1) - joint0
        direction = 1 if delta > math.log(0.8) else -1

        for _ in range(100):
            step_size = step_size * 2.0 if direction == 1 else step_size * 0.5
            _, r1, _, lp1 = self._leapfrog(theta, r, grad, lp, step_size)
            delta = self._joint(lp1, r1) - joint0
            if (direction == 1) != (delta > math.log(0.8)):
                return step_size
        raise SamplerError(f"Step size search did not terminate (step_size={step_size:.3g})")

    def _build_tree(self, state, log_u, direction, depth, step_size, joint0):
        """Recursively build a balanced subtree of 2**depth leapfrog steps.

        Returns (minus, plus, proposal, n_valid, keep_going, sum_alpha,
        n_alpha, divergent) where states are (theta, r, grad, lp) tuples.
        """
        if depth == 0:
            new = self._leapfrog(*state, direction * step_size)
            joint = self._joint(new[3], new[1])
            n_valid = int(log_u <= joint)
            keep_going = log_u < joint + MAX_DELTA_H
            alpha = math.exp(min(0.0, joint - joint0)) if np.isfinite(joint) else 0.0
            return new, new, new, n_valid, keep_going, alpha, 1, not keep_going

        minus, plus, proposal, n_valid, keep_going, alpha, n_alpha, divergent = self._build_tree(
            state, log_u, direction, depth - 1, step_size, joint0
        )
        if keep_going:
            if direction == -1:
                minus, _, proposal2, n2, keep2, alpha2, n_alpha2, div2 = self._build_tree(
                    minus, log_u, direction, depth - 1, step_size, joint0
                )
            else:
                _, plus, proposal2, n2, keep2, alpha2, n_alpha2, div2 = self._build_tree(
                    plus, log_u, direction, depth - 1, step_size, joint0
                )
            if n_valid + n2 > 0 and self.rng.uniform() < n2 / (n_valid + n2):
                proposal = proposal2
            alpha += alpha2
            n_alpha += n_alpha2
            n_valid += n2
            divergent = divergent or div2
            keep_going = keep2 and self._no_uturn(minus, plus)

        return minus, plus, proposal, n_valid, keep_going, alpha, n_alpha, divergent

    def transition(self, theta: np.ndarray, lp: float, grad: np.ndarray, step_size: float) -> dict:
        """One NUTS iteration from ``theta``."""
        self._n_leapfrog = 0
        r0 = self._sample_momentum()
        joint0 = self._joint(lp, r0)
        log_u = joint0 - self.rng.exponential()

        minus = plus = current = (theta, r0, grad, lp)
        n_valid = 1
        keep_going = True
        depth = 0
        alpha, n_alpha, divergent = 0.0, 0, False

        while keep_going and depth < self.max_treedepth:
            direction = -1 if self.rng.uniform() < 0.5 else 1
            if direction == -1:
                minus, _, proposal, n2, keep2, alpha, n_alpha, div = self._build_tree(
                    minus, log_u, direction, depth, step_size, joint0
                )
            else:
                _, plus, proposal, n2, keep2, alpha, n_alpha, div = self._build_tree(
                    plus, log_u, direction, depth, step_size, joint0
                )
            divergent = divergent or div
            if keep2 and self.rng.uniform() < min(1.0, n2 / n_valid):
                current = proposal
            n_valid += n2
            keep_going = keep2 and self._no_uturn(minus, plus)
            depth += 1

        return {
            "theta": current[0],
            "grad": current[2],
            "lp": current[3],
            "n_leapfrog": self._n_leapfrog,
            "treedepth": depth,
            "accept_stat": alpha / n_alpha if n_alpha else 0.0,
            "divergent": divergent,
        }

    # ------------------------------------------------------------------
    # Chain
    # ------------------------------------------------------------------

    def sample(
        self,
        theta0: np.ndarray,
        n_warmup: int,
        n_samples: int,
        adapt_engaged: bool = True,
        save_warmup: bool = False,
        chain: int = 0,
    ) -> ChainTrace:
        """Run warmup and sampling for one chain."""
        theta = np.asarray(theta0, dtype=np.float64).copy()
        lp, grad = self._evaluate(theta)
        if not np.isfinite(lp):
            raise SamplerError(
                f"Chain {chain}: log density is not finite at the initial values {theta.tolist()}"
            )

        step_size = self.step_size
        if step_size is None:
            step_size = self.find_reasonable_step_size(theta, lp, grad)

        adapt = adapt_engaged and n_warmup > 0
        if adapt:
            stepsize_adapter = DualAveraging(step_size, delta=self.target_accept)
            metric_adapter = WindowedAdaptation(n_warmup, self.n_params)

        draws, lps, n_leapfrogs, depths, accepts, divergents = [], [], [], [], [], []
        total_leapfrog = 0

        def record(result):
            draws.append(result["theta"])
            lps.append(result["lp"])
            n_leapfrogs.append(result["n_leapfrog"])
            depths.append(result["treedepth"])
            accepts.append(result["accept_stat"])
            divergents.append(result["divergent"])

        t_start = time.perf_counter()
        for i in range(n_warmup):
            result = self.transition(theta, lp, grad, step_size)
            theta, lp, grad = result["theta"], result["lp"], result["grad"]
            total_leapfrog += result["n_leapfrog"]
            if save_warmup:
                record(result)

            if adapt:
                step_size = stepsize_adapter.update(result["accept_stat"])
                inv_metric = metric_adapter.learn(theta)
                if inv_metric is not None:
                    self.inv_metric = inv_metric
                    self.step_size = step_size
                    step_size = self.find_reasonable_step_size(theta, lp, grad)
                    stepsize_adapter.restart(step_size)
                    log.debug(f"Chain {chain}: metric window closed at iteration {i + 1}")

        if adapt:
            step_size = stepsize_adapter.final_step_size()
        warmup_time = time.perf_counter() - t_start

        t_start = time.perf_counter()
        for _ in range(n_samples):
            result = self.transition(theta, lp, grad, step_size)
            theta, lp, grad = result["theta"], result["lp"], result["grad"]
            total_leapfrog += result["n_leapfrog"]
            record(result)
        sampling_time = time.perf_counter() - t_start

        self.step_size = step_size
        return ChainTrace(
            chain=chain,
            draws=np.array(draws).reshape(len(draws), self.n_params),
            n_warmup_saved=n_warmup if save_warmup else 0,
            step_size=step_size,
            inv_metric=self.inv_metric.copy(),
            lp=lps,
            n_leapfrog=n_leapfrogs,
            treedepth=depths,
            accept_stat=accepts,
            divergent=divergents,
            total_leapfrog=total_leapfrog,
            warmup_time=warmup_time,
            sampling_time=sampling_time,
        )
