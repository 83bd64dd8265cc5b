"""
Command-line interface for achievement proofs.

Commands cover the holder side (commit, prove) and the verifier side
(verify) of the protocol, plus a field encoder for debugging.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import trio
from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.table import Table

from achievement_zk import __version__
from achievement_zk.privacy_protocol.derivation import SecretDeriver
from achievement_zk.privacy_protocol.commitment import CommitmentEngine
from achievement_zk.privacy_protocol.exceptions import PrivacyProtocolError, ProofBatchError
from achievement_zk.privacy_protocol.factory import get_prover
from achievement_zk.privacy_protocol.field import encode_to_field
from achievement_zk.privacy_protocol.poseidon import Poseidon, PoseidonParams
from achievement_zk.privacy_protocol.registry import InMemoryCommitmentRegistry
from achievement_zk.privacy_protocol.settings import CircuitManifest, ProverSettings
from achievement_zk.privacy_protocol.snark.assets import load_verification_key
from achievement_zk.privacy_protocol.snark.generator import ProofGenerator
from achievement_zk.privacy_protocol.snark.verifier import ProofVerifier
from achievement_zk.privacy_protocol.types import ProofPack, ProofStage
from achievement_zk.privacy_protocol.wallet import Ed25519Wallet

logger = logging.getLogger(__name__)


def _fail(message: str) -> None:
    click.echo(click.style(f"✗ {message}", fg="red"), err=True)
    sys.exit(1)


def _load_hasher(constants: Optional[str]) -> Poseidon:
    if constants:
        return Poseidon(PoseidonParams.from_json(constants))
    return Poseidon.for_arity(4)


def _load_manifest(manifest: Optional[str]) -> CircuitManifest:
    if manifest:
        return CircuitManifest.from_yaml(manifest)
    return CircuitManifest.from_env()


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose):
    """
    achievement-zk - prove you hold an achievement without revealing your secret.

    ⚠️  EXPERIMENTAL - requires crypto review before production use
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@main.command()
@click.argument("value")
def encode(value):
    """Print the field encoding of VALUE."""
    try:
        click.echo(str(encode_to_field(value)))
    except PrivacyProtocolError as e:
        _fail(str(e))


@main.command()
@click.option("--credential-id", required=True, help="Credential identifier")
@click.option(
    "--achievement", "achievements", multiple=True, required=True,
    help="Achievement code (repeatable)",
)
@click.option(
    "--key-file", type=click.Path(exists=True, dir_okay=False), required=True,
    help="File holding a hex-encoded 32-byte Ed25519 seed",
)
@click.option(
    "--registry", type=click.Path(dir_okay=False),
    help="Record the commitments into this JSON registry file",
)
@click.option(
    "--poseidon-constants", type=click.Path(exists=True, dir_okay=False),
    help="Poseidon constants JSON exported from the circuit build",
)
def commit(credential_id, achievements, key_file, registry, poseidon_constants):
    """Compute commitments for a credential's achievements."""

    async def _commit():
        wallet = Ed25519Wallet.from_key_file(key_file)
        secrets = await SecretDeriver().derive(wallet, credential_id)
        engine = CommitmentEngine(_load_hasher(poseidon_constants))
        return wallet, engine.commit_many(credential_id, achievements, secrets)

    try:
        wallet, commitments = trio.run(_commit)
        output = {code: c.to_dict() for code, c in commitments.items()}
        click.echo(json.dumps(output, indent=2))

        if registry:
            store = InMemoryCommitmentRegistry.load(registry)
            for code, c in commitments.items():
                store.register(
                    credential_id, code, c.commitment, wallet_public_key=wallet.public_key
                )
            store.save(registry)
            click.echo(
                click.style(f"✓ Recorded {len(commitments)} commitment(s) in {registry}", fg="green"),
                err=True,
            )
    except (PrivacyProtocolError, ValueError) as e:
        _fail(str(e))


@main.command()
@click.option("--credential-id", required=True, help="Credential identifier")
@click.option(
    "--achievement", "achievements", multiple=True, required=True,
    help="Achievement code (repeatable)",
)
@click.option(
    "--key-file", type=click.Path(exists=True, dir_okay=False), required=True,
    help="File holding a hex-encoded 32-byte Ed25519 seed",
)
@click.option(
    "--manifest", type=click.Path(exists=True, dir_okay=False),
    help="Circuit manifest YAML (default: ACHIEVEMENT_ZK_ARTIFACTS_DIR layout)",
)
@click.option("--out", "out_path", type=click.Path(dir_okay=False), required=True,
              help="Where to write the proof pack JSON")
@click.option(
    "--prover", type=click.Choice(["snarkjs", "rapidsnark"]),
    help="Proving backend (default: ACHIEVEMENT_ZK_PROVER or snarkjs)",
)
@click.option("--max-concurrent", type=int, default=1, show_default=True,
              help="Proofs generated at the same time")
@click.option(
    "--poseidon-constants", type=click.Path(exists=True, dir_okay=False),
    help="Poseidon constants JSON exported from the circuit build",
)
def prove(credential_id, achievements, key_file, manifest, out_path, prover,
          max_concurrent, poseidon_constants):
    """Generate a proof pack for a credential's achievements."""
    console = Console(stderr=True)

    async def _prove(progress_bar, task_id):
        settings = ProverSettings(prover=prover, max_concurrent_proofs=max_concurrent)
        generator = ProofGenerator(
            get_prover(settings),
            _load_hasher(poseidon_constants),
            _load_manifest(manifest),
            settings=settings,
        )
        wallet = Ed25519Wallet.from_key_file(key_file)
        secrets = await SecretDeriver().derive(wallet, credential_id)

        send_channel, receive_channel = trio.open_memory_channel(16)
        result = {}

        async def _produce():
            async with send_channel:
                try:
                    result["proofs"] = await generator.generate_pack(
                        credential_id, secrets, achievements, progress=send_channel
                    )
                except PrivacyProtocolError as exc:
                    result["error"] = exc

        async with trio.open_nursery() as nursery:
            nursery.start_soon(_produce)
            async with receive_channel:
                async for event in receive_channel:
                    if event.stage is ProofStage.ERROR:
                        console.print(f"[red]{event.message}[/red]")
                        continue
                    progress_bar.update(task_id, completed=event.percent, description=event.message)

        if "error" in result:
            raise result["error"]
        return result["proofs"]

    try:
        with Progress(
            TextColumn("{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
        ) as progress_bar:
            task_id = progress_bar.add_task("Starting...", total=100)
            proofs = trio.run(_prove, progress_bar, task_id)
    except ProofBatchError as e:
        if e.completed:
            partial = ProofPack(credential_id=credential_id, proofs=tuple(e.completed))
            Path(out_path).write_text(partial.to_json(), encoding="utf-8")
            click.echo(f"Wrote {len(e.completed)} completed proof(s) to {out_path}", err=True)
        _fail(str(e))
    except (PrivacyProtocolError, ValueError) as e:
        _fail(str(e))

    pack = ProofPack(credential_id=credential_id, proofs=tuple(proofs))
    Path(out_path).write_text(pack.to_json(), encoding="utf-8")
    click.echo(click.style(f"✓ Wrote {len(proofs)} proof(s) to {out_path}", fg="green"))


@main.command()
@click.argument("pack_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--vkey", type=click.Path(exists=True, dir_okay=False), required=True,
              help="snarkjs verification_key.json")
@click.option("--registry", type=click.Path(exists=True, dir_okay=False), required=True,
              help="JSON registry of recorded commitments")
def verify(pack_path, vkey, registry):
    """Verify every proof in a proof pack."""
    try:
        pack = ProofPack.from_json(Path(pack_path).read_text(encoding="utf-8"))
        verifier = ProofVerifier(
            load_verification_key(vkey), InMemoryCommitmentRegistry.load(registry)
        )
    except (PrivacyProtocolError, ValueError) as e:
        _fail(str(e))

    results = verifier.verify_pack(pack)

    table = Table(title=f"Credential {pack.credential_id}")
    table.add_column("Achievement")
    table.add_column("Result")
    table.add_column("Reason")
    table.add_column("Proof hash", overflow="fold")
    for result in results:
        table.add_row(
            result.achievement_code or "",
            "[green]verified[/green]" if result.verified else "[red]rejected[/red]",
            "" if result.verified else result.message,
            result.proof_hash[:16],
        )
    Console().print(table)

    if not results or not all(r.verified for r in results):
        sys.exit(1)


if __name__ == "__main__":
    main()
