"""
Command-line interface for Tridiag Lab.

Usage:
    tridiag-lab info           Show precision formats and perturbation constants
    tridiag-lab solve          Run perturbed inverse iteration on a given matrix
    tridiag-lab demo           Run inverse iteration on a generated test problem
"""

import logging
from typing import Annotated

import numpy as np
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from tridiag_lab import __version__
from tridiag_lab.algorithms import (
    InverseIterationResult,
    InverseStatus,
    create_backend,
    create_problem,
    eigen_inverse,
)
from tridiag_lab.data import (
    PrecisionFormat,
    get_dtype,
    get_spec,
    get_tolerance,
    list_available_formats,
)

app = typer.Typer(
    name="tridiag-lab",
    help="Perturbed inverse iteration for symmetric tridiagonal eigenvectors",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"tridiag-lab version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
            force=True,
        )


def _parse_vector(text: str, name: str) -> np.ndarray:
    """Parse a comma separated list of floats."""
    if not text.strip():
        return np.zeros(0)
    try:
        return np.array([float(item) for item in text.split(",")])
    except ValueError as exc:
        raise typer.BadParameter(f"{name} must be comma separated numbers") from exc


def _result_table(result: InverseIterationResult, title: str) -> Table:
    table = Table(title=title)
    table.add_column("Quantity", style="cyan", no_wrap=True)
    table.add_column("Value", justify="right")

    style = "green" if result.converged else "red"
    table.add_row("Status", f"[{style}]{result.status.name}[/]")
    table.add_row("Iterations", str(result.iterations))
    table.add_row("Shift attempts", str(len(result.shift_attempts)))
    table.add_row("Perturbation", f"{result.pert:.3e}")
    table.add_row("Shifted λ", f"{result.lam_pert:.12g}")
    table.add_row("Refined λ", f"{result.eigenvalue:.12g}")
    table.add_row("Time", f"{result.elapsed * 1e3:.3f} ms")
    return table


@app.callback()  # type: ignore[misc]
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
) -> None:
    """Tridiag Lab - Tridiagonal eigenvector experiments."""
    pass


@app.command()  # type: ignore[misc]
def info() -> None:
    """Display precision formats and the shift search constants."""
    table = Table(title="Available Precision Formats")

    table.add_column("Format", style="cyan", no_wrap=True)
    table.add_column("Bits", justify="right")
    table.add_column("Machine ε", justify="right")
    table.add_column("ε^(1/4)", justify="right")
    table.add_column("Max pert (1/ε)", justify="right")
    table.add_column("tol_abs", justify="right")
    table.add_column("itmax", justify="right")

    for fmt in list_available_formats():
        spec = get_spec(fmt)
        table.add_row(
            fmt.value.upper(),
            str(spec.bits),
            f"{spec.machine_epsilon:.2e}",
            f"{spec.eps_pow_4:.2e}",
            f"{spec.max_perturbation:.2e}",
            f"{get_tolerance(fmt, 'tol_abs'):.2e}",
            str(get_tolerance(fmt, "itmax")),
        )

    console.print(table)


@app.command()  # type: ignore[misc]
def solve(
    diag: Annotated[
        str,
        typer.Option("--diag", "-d", help="Main diagonal, e.g. '1,2,-1.75'"),
    ],
    lam: Annotated[
        float,
        typer.Option("--lam", "-l", help="Target (leftmost) eigenvalue"),
    ],
    offdiag: Annotated[
        str,
        typer.Option("--offdiag", "-o", help="Off-diagonal, e.g. '0,1'"),
    ] = "",
    start: Annotated[
        str | None,
        typer.Option("--start", "-s", help="Starting vector (all ones if omitted)"),
    ] = None,
    itmax: Annotated[
        int | None,
        typer.Option("--itmax", "-i", help="Iteration budget"),
    ] = None,
    tol: Annotated[
        float | None,
        typer.Option("--tol", "-t", help="Absolute convergence tolerance"),
    ] = None,
    precision: Annotated[
        str,
        typer.Option("--precision", "-p", help="Precision format to use"),
    ] = PrecisionFormat.FP64.value,
    backend: Annotated[
        str,
        typer.Option("--backend", "-b", help="Numeric backend: lapack or numpy"),
    ] = "lapack",
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log shift attempts and iterations"),
    ] = False,
) -> None:
    """Compute the eigenvector for a target eigenvalue of a tridiagonal matrix."""
    _configure_logging(verbose)

    d = _parse_vector(diag, "--diag")
    e = _parse_vector(offdiag, "--offdiag")
    eig = np.ones(d.shape[0]) if start is None else _parse_vector(start, "--start")

    try:
        eig = eig.astype(get_dtype(precision))
        result = eigen_inverse(
            d,
            e,
            lam,
            eig,
            itmax=itmax,
            tol_abs=tol,
            precision=precision,
            backend=create_backend(backend, precision),
        )
    except (TypeError, ValueError) as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=2) from exc

    console.print(_result_table(result, "Perturbed Inverse Iteration"))
    if result.status in (InverseStatus.CONV, InverseStatus.ITMAX):
        console.print("Eigenvector: " + ", ".join(f"{x:.10g}" for x in eig))

    raise typer.Exit(code=0 if result.converged else 1)


@app.command()  # type: ignore[misc]
def demo(
    kind: Annotated[
        str,
        typer.Option("--kind", "-k", help="laplacian, random or reducible"),
    ] = "random",
    matrix_size: Annotated[
        int,
        typer.Option("--size", "-n", help="Matrix dimension"),
    ] = 50,
    seed: Annotated[
        int,
        typer.Option("--seed", help="Random seed"),
    ] = 42,
    backend: Annotated[
        str,
        typer.Option("--backend", "-b", help="Numeric backend: lapack or numpy"),
    ] = "lapack",
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log shift attempts and iterations"),
    ] = False,
) -> None:
    """Resolve the leftmost eigenvector of a generated test problem."""
    _configure_logging(verbose)

    try:
        problem = create_problem(kind, matrix_size, seed=seed)
        solver = create_backend(backend)
    except ValueError as exc:
        console.print(f"[red]Error:[/] {exc}")
        raise typer.Exit(code=2) from exc

    eig = problem.initial_vector.copy()
    result = eigen_inverse(
        problem.matrix.diag,
        problem.matrix.offdiag,
        problem.target_eigenvalue,
        eig,
        backend=solver,
    )

    console.print(f"[bold]{kind.capitalize()} matrix[/], n = {problem.matrix.n}")
    console.print(f"  Reference λ_min: {problem.target_eigenvalue:.12g}")
    console.print(_result_table(result, "Perturbed Inverse Iteration"))
    if result.converged:
        cosine = abs(float(eig @ problem.target_eigenvector))
        console.print(f"  |cos(eig, v_min)| = {cosine:.15f}")

    raise typer.Exit(code=0 if result.converged else 1)


if __name__ == "__main__":
    app()
