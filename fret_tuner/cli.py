"""Command-line interface for Fret Tuner."""

import asyncio
from typing import Optional

import click

from .core.config import JsonSettingsStore
from .logging_config import get_logger
from .logging_config import setup_logging
from .note_types import DropTuningNote, PitchMode
from .note_utils import format_cent, judge_tuning, map_frequency
from .pitch import STANDARD_A4, guitar_strings
from .synchronizer import SettingsSynchronizer

logger = get_logger(__name__)

PITCH_MODES = click.Choice([mode.value for mode in PitchMode])
DROP_NOTES = click.Choice([note.value for note in DropTuningNote])


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option(
    "--config-dir",
    type=click.Path(file_okay=False),
    default=None,
    help="Directory holding settings.json (default: ~/.config/fret_tuner)",
)
@click.pass_context
def main(ctx, debug, config_dir):
    """Guitar tuner pitch tools"""
    setup_logging("DEBUG" if debug else None)
    ctx.ensure_object(dict)
    ctx.obj["config_dir"] = config_dir


@main.command()
@click.argument("frequency", type=float)
@click.option("--a4", default=STANDARD_A4, show_default=True, help="Reference pitch in Hz")
def note(frequency, a4):
    """Show the note nearest to FREQUENCY"""
    info = map_frequency(frequency, a4)
    if not info.has_signal:
        click.echo("-")
        return
    click.echo(
        f"{info.name} {format_cent(info.cent)} cents "
        f"(target {info.target_freq:.2f} Hz, {judge_tuning(info.cent).value})"
    )


@main.command()
@click.option("--pitch-mode", type=PITCH_MODES, default=PitchMode.STANDARD.value)
@click.option("--custom-pitch", default=STANDARD_A4, help="Reference pitch for custom mode")
@click.option("--shift", default=0, help="Semitone shift for shift mode")
@click.option("--drop", type=DROP_NOTES, default=None, help="Drop the 6th string to this note")
def strings(pitch_mode, custom_pitch, shift, drop):
    """Show the target note of each string"""
    targets = guitar_strings(
        PitchMode(pitch_mode),
        custom_pitch,
        shift,
        drop is not None,
        DropTuningNote(drop) if drop else DropTuningNote.D,
    )
    for number, target in zip(range(6, 0, -1), targets):
        click.echo(f"{number}: {target.name:<4} {target.freq:7.2f} Hz")


@main.command()
def devices():
    """List audio input devices"""
    from .services.audio_backend import SoundDeviceBackend

    names = asyncio.run(SoundDeviceBackend().list_devices())
    if not names:
        click.echo("No input devices found")
    for name in names:
        click.echo(name)


@main.command()
@click.option("--device", default=None, help="Input device name")
@click.option("--duration", "-t", default=30.0, help="Seconds to listen")
@click.option("--pitch-mode", type=PITCH_MODES, default=None)
@click.option("--custom-pitch", type=float, default=None)
@click.option("--shift", type=int, default=None)
@click.option("--drop", type=DROP_NOTES, default=None)
@click.option("--no-drop", is_flag=True, help="Disable drop tuning")
@click.pass_context
def listen(ctx, device, duration, pitch_mode, custom_pitch, shift, drop, no_drop):
    """Tune live from an input device, saving any changed settings"""
    from .services.audio_backend import SoundDeviceBackend

    backend = SoundDeviceBackend()
    sync = SettingsSynchronizer(backend, JsonSettingsStore(ctx.obj["config_dir"]))
    try:
        asyncio.run(
            _listen(sync, device, duration, pitch_mode, custom_pitch, shift, drop, no_drop)
        )
    except KeyboardInterrupt:
        pass
    finally:
        backend.stop()
        click.echo()


async def _listen(
    sync: SettingsSynchronizer,
    device: Optional[str],
    duration: float,
    pitch_mode: Optional[str],
    custom_pitch: Optional[float],
    shift: Optional[int],
    drop: Optional[str],
    no_drop: bool,
) -> None:
    def show(name, _value):
        if name == "listen_status":
            click.echo(sync.context.listen_status)
        elif name == "frequency":
            context = sync.context
            click.echo(
                f"\r{context.note_info.name:<4} {context.cent_display:>4} cents "
                f"[{context.tuning_status.value:<7}]",
                nl=False,
            )

    sync.on_change(show)
    await sync.load()
    try:
        if device:
            await sync.select_device(device)
        if pitch_mode:
            await sync.update_pitch_mode(pitch_mode)
        if custom_pitch is not None and not await sync.update_custom_pitch(custom_pitch):
            click.echo(f"Custom pitch {custom_pitch} Hz ignored (allowed: 438-445 Hz)")
        if shift is not None:
            await sync.update_tuning_shift(shift)
        if drop or no_drop:
            await sync.update_drop_tuning(enabled=not no_drop, note=drop)

        targets = ", ".join(f"{t.name} {t.freq:.2f}" for t in sync.context.guitar_strings)
        click.echo(f"A4 = {sync.context.effective_a4:.2f} Hz | {targets}")
        await asyncio.sleep(duration)
    finally:
        await sync.close()


if __name__ == "__main__":
    main()
