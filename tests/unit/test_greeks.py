"""Unit tests for the first-order Black-76 Greeks."""

import math
import unittest

from futvol.errors import InputMissingError
from futvol.models.black76 import price
from futvol.models.greeks import DAYS_PER_YEAR, delta, gamma, greeks, rho, theta, vega
from futvol.protocols import Greeks, InputSet, OptionType


def _bump(inputs: InputSet, **kwargs: float) -> InputSet:
    fields = {
        "option_type": inputs.option_type,
        "f": inputs.f,
        "k": inputs.k,
        "r": inputs.r,
        "t": inputs.t,
        "sigma": inputs.sigma,
        "shifted": inputs.shifted,
    }
    fields.update(kwargs)
    return InputSet(**fields)


class TestGreeks(unittest.TestCase):
    """Closed-form Greeks against identities and finite differences."""

    @classmethod
    def setUpClass(cls) -> None:
        cls.call = InputSet(OptionType.CALL, f=100.0, k=105.0, r=0.03, t=0.5, sigma=0.25)
        cls.put = InputSet(OptionType.PUT, f=100.0, k=105.0, r=0.03, t=0.5, sigma=0.25)

    def test_delta_call_minus_put_is_discount_factor(self) -> None:
        df = math.exp(-self.call.r * self.call.t)
        self.assertAlmostEqual(delta(self.call) - delta(self.put), df, places=12)

    def test_delta_bounds(self) -> None:
        self.assertTrue(0 < delta(self.call) < 1)
        self.assertTrue(-1 < delta(self.put) < 0)

    def test_gamma_and_vega_equal_for_call_and_put(self) -> None:
        self.assertAlmostEqual(gamma(self.call), gamma(self.put), places=14)
        self.assertAlmostEqual(vega(self.call), vega(self.put), places=14)

    def test_delta_matches_finite_difference(self) -> None:
        h = 1e-4
        for inputs in (self.call, self.put):
            up = price(_bump(inputs, f=inputs.f + h))
            dn = price(_bump(inputs, f=inputs.f - h))
            self.assertAlmostEqual(delta(inputs), (up - dn) / (2 * h), places=6)

    def test_gamma_matches_finite_difference(self) -> None:
        h = 1e-2
        up = delta(_bump(self.call, f=self.call.f + h))
        dn = delta(_bump(self.call, f=self.call.f - h))
        self.assertAlmostEqual(gamma(self.call), (up - dn) / (2 * h), places=6)

    def test_vega_matches_finite_difference(self) -> None:
        h = 1e-5
        up = price(self.call.with_sigma(self.call.sigma + h))
        dn = price(self.call.with_sigma(self.call.sigma - h))
        # per 1% vol
        self.assertAlmostEqual(vega(self.call), 0.01 * (up - dn) / (2 * h), places=6)

    def test_theta_matches_finite_difference(self) -> None:
        h = 1e-5
        for inputs in (self.call, self.put):
            # Theta is the decay as calendar time passes, i.e. as t shrinks.
            up = price(_bump(inputs, t=inputs.t + h))
            dn = price(_bump(inputs, t=inputs.t - h))
            expected = -(up - dn) / (2 * h) / DAYS_PER_YEAR
            self.assertAlmostEqual(theta(inputs), expected, places=7)

    def test_rho_matches_finite_difference(self) -> None:
        h = 1e-6
        up = price(_bump(self.put, r=self.put.r + h))
        dn = price(_bump(self.put, r=self.put.r - h))
        self.assertAlmostEqual(rho(self.put), 0.01 * (up - dn) / (2 * h), places=6)

    def test_greeks_bundle(self) -> None:
        result = greeks(self.call)
        self.assertIsInstance(result, Greeks)
        self.assertEqual(result.delta, delta(self.call))
        self.assertEqual(result.vega, vega(self.call))
        self.assertLess(result.theta, 0)

    def test_missing_sigma(self) -> None:
        with self.assertRaises(InputMissingError):
            gamma(self.call.with_sigma(None))


if __name__ == "__main__":
    unittest.main()
