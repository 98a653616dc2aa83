from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from decimal import Decimal
from statistics import mean
from timeit import timeit
from typing import Annotated, Any, Self

from tabulate import tabulate
from typer import Option, Typer

from observation import Emitter, Registry


@dataclass(frozen=True, slots=True)
class Benchmark:
    x: Decimal
    y: Decimal

    @property
    def difference_rate(self) -> Decimal:
        return ((self.y - self.x) / self.x) * 100

    @classmethod
    def compare(
        cls,
        x: Callable[..., Any],
        y: Callable[..., Any],
        number: int = 1,
    ) -> Self:
        x = mean(cls._time_in_ns(x, number))
        y = mean(cls._time_in_ns(y, number))
        return cls(x, y)

    @staticmethod
    def _time_in_ns(callable_: Callable[..., Any], number: int) -> Iterator[Decimal]:
        for _ in range(number):
            delta = timeit(callable_, number=1)
            yield Decimal(delta) * (10**6)


@dataclass(frozen=True, slots=True)
class BenchmarkResult:
    title: str
    benchmark: Benchmark

    @property
    def row(self) -> tuple[str, str, str, str]:
        rate = self.benchmark.difference_rate
        return (
            self.title,
            f"{self.benchmark.x:.2f}μs",
            f"{self.benchmark.y:.2f}μs",
            f"{rate:.2f}% slower" if rate >= 0 else f"{abs(rate):.2f}% faster",
        )


def setup(emitter: Emitter[[int]]) -> Callable[[], None]:
    emitter.emit(sum(range(1000)))
    return lambda: None


def listener(value: int) -> None:
    pass


@dataclass(frozen=True, slots=True)
class ObservationBenchmark:
    sizes: Iterable[int]

    def start(self, number: int = 1) -> Iterator[BenchmarkResult]:
        for size in self.sizes:

            def reference() -> None:
                teardowns = [setup(Emitter(Registry(), "bench")) for _ in range(size)]

                for teardown in teardowns:
                    teardown()

            def observed() -> None:
                registry = Registry()
                handles = [registry.observe("bench", listener) for _ in range(size)]

                for handle in handles:
                    handle.attach(setup)

                for handle in handles:
                    handle.detach()

            benchmark = Benchmark.compare(reference, observed, number)
            yield BenchmarkResult(f"{size} listener{"s" if size > 1 else ""}", benchmark)


cli = Typer()


@cli.command()
def main(number: Annotated[int, Option("--number", "-n", min=0)] = 1000):
    results = ObservationBenchmark(sizes=(1, 2, 5, 10, 50)).start(number)
    headers = ("", "Setup per listener (μs)", "Shared setup (μs)", "Difference Rate (%)")
    data = (result.row for result in results)
    table = tabulate(data, headers=headers)
    print(table)


if __name__ == "__main__":
    cli()
