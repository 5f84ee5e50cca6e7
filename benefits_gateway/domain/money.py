"""Fixed-point money in integer minor units"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP, localcontext

from benefits_gateway.domain.exceptions import CurrencyMismatch


@dataclass(frozen=True)
class Money:
    """Amount in cents plus ISO currency code. Negative amounts are allowed."""

    cents: int
    currency: str = "USD"

    def __post_init__(self) -> None:
        # bool is an int subclass; floats are never accepted
        if not isinstance(self.cents, int) or isinstance(self.cents, bool):
            raise TypeError(f"Money requires integer cents, got {type(self.cents).__name__}")
        if not isinstance(self.currency, str) or len(self.currency) != 3:
            raise ValueError(f"Invalid currency code: {self.currency!r}")
        object.__setattr__(self, "currency", self.currency.upper())

    def _check(self, other: "Money") -> None:
        if not isinstance(other, Money):
            raise TypeError(f"Expected Money, got {type(other).__name__}")
        if other.currency != self.currency:
            raise CurrencyMismatch(f"Currency mismatch: {self.currency} vs {other.currency}")

    def __add__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.cents + other.cents, self.currency)

    def __sub__(self, other: "Money") -> "Money":
        self._check(other)
        return Money(self.cents - other.cents, self.currency)

    def __neg__(self) -> "Money":
        return Money(-self.cents, self.currency)

    def __lt__(self, other: "Money") -> bool:
        self._check(other)
        return self.cents < other.cents

    def __le__(self, other: "Money") -> bool:
        self._check(other)
        return self.cents <= other.cents

    def __gt__(self, other: "Money") -> bool:
        self._check(other)
        return self.cents > other.cents

    def __ge__(self, other: "Money") -> bool:
        self._check(other)
        return self.cents >= other.cents

    def is_negative(self) -> bool:
        return self.cents < 0

    def percentage(self, percent: Decimal) -> "Money":
        """
        Portion of this amount for a percentage, rounded half-up to the cent.

        Example:
            Money(1001).percentage(Decimal("50")) -> Money(501)
        """
        if not isinstance(percent, Decimal):
            raise TypeError("Percentage must be a Decimal")
        with localcontext() as ctx:
            ctx.prec = 50
            exact = Decimal(self.cents) * percent / Decimal(100)
            rounded = exact.quantize(Decimal(1), rounding=ROUND_HALF_UP)
        return Money(int(rounded), self.currency)

    def __str__(self) -> str:
        sign = "-" if self.cents < 0 else ""
        whole, frac = divmod(abs(self.cents), 100)
        return f"{self.currency} {sign}{whole}.{frac:02d}"
