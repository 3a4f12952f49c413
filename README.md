# clxsim

Tools for modelling a Coulomb-excitation experiment. In this experiment a beam
hits a thin target. Annular double-sided silicon detectors (S3 type) detect the
scattered projectile and the recoil. A 16-detector germanium array (SeGA), with
32 segments per detector, detects the de-excitation gamma rays.

## Modules

### `clxsim.kinematics`

- `Reaction` describes the two-body reaction. Masses are in MeV/c^2. The
  defaults are a 265 MeV 106Cd beam on 48Ti.
- `theta_cm_from_projectile` and `theta_cm_from_recoil` convert a laboratory
  angle to a centre-of-mass angle. Both accept the second kinematic solution.
- `theta_lab` and `recoil_theta_lab` convert back to a laboratory angle.
- `theta_lab_max` gives the largest projectile angle.
- `ke_lab` and `recoil_ke_lab` give the laboratory kinetic energies.
- `sega_sigma(energy)` is the energy resolution of a germanium core, in keV.
- `doppler_correct(energy, kinetic_energy, mass, angle)` applies the
  relativistic Doppler correction.

### `clxsim.geometry`

- `Vector3` is an immutable 3-vector. Its methods are `perp`, `phi`, `theta`,
  `mag`, `with_perp`, `with_phi`, `with_theta`, `rotate_y`, `cross`, `dot` and
  `angle`.
- `s3_segment_position(det, ring, sector, us_offset, ds_offset)` gives the
  centre of a silicon pixel, in cm. Detector 0 is upstream and detector 1 is
  downstream.
- `sega_segment_position(det, seg, offset)` gives the centre of a germanium
  segment.
- Both functions raise `ValueError` for an index that is out of range.

### `clxsim.events`

`build_event(event_number, s3_channels, sega_channels)` turns raw
`S3Channel` and `SegaChannel` records into a `BuiltEvent`.

- Ring and sector channels are sorted by energy, highest first. A sector is
  paired with a ring of the same detector when their energies agree within
  1 MeV.
- A ring whose energy is shared between two sectors is then paired with both
  sectors.
- Each pair becomes a `ParticleHit`.
- Germanium channels are grouped per detector into `GammaDetectorHit`
  records. Segment 0 is the core.
- `GammaDetectorHit.main_segment()` returns the segment with the most energy.

### `clxsim.hits`

- `decode_gamma_id` and `decode_ion_id` unpack volume copy numbers into
  detector, segment, ring and sector numbers.
- `GammaSensitiveDetector` collects `GammaHit`s. At the end of an event it
  does the following:
  - It merges deposits in the same detector and segment.
  - It adds one core hit for each detector above 0.01 keV.
  - It flags a core hit as full-energy (`fep`) when one emitted gamma ray and
    its secondaries account for every track in that detector, and that gamma
    ray's energy matches the core energy.
  - It also flags the hit as a projectile full-energy peak (`pfep`) when that
    gamma ray came from the projectile.
- `IonSensitiveDetector` records a ring hit and a sector hit for each step of
  the projectile or the recoil. It merges hits of the same particle on the
  same side. It then combines ring hits that share a ring and a detector.

### `clxsim.decay`

- `GammaDecay` is one decay branch. It holds the spins, the multipolarities,
  the mixing ratio, the conversion coefficient and the projectile and recoil
  polarizations.
- `GammaDecay.emits_gamma(rng)` draws whether a photon is emitted rather than
  a conversion electron.
- `two_body_momentum` gives the momentum of the daughters in the rest frame.

### `clxsim.progress`

- `progress_interval(num_events)` gives the number of events between progress
  lines.
- `EventProgress.begin_event` writes an `Event N (P%)` line at that interval.

### `clxsim.targets`

- `standard_target(name)` knows 48Ti, 208Pb, 196Pt, 194Pt, 110Pd and 197Au.
  It accepts the forms `208Pb`, `Pb208`, `208pb` and `pb208`.
- `DetectorConstruction` holds the settings of a setup:
  - the placement switches;
  - the detector offsets, in mm;
  - the current target;
  - the step limit in the target;
  - the names of the sensitive volumes, from `sensitive_volume_names()`.

### `clxsim.levels`

- `parse_level_scheme` and `parse_source_level_scheme` read level-scheme
  files into a `LevelScheme` of `Level`s. Each `Level` holds its `GammaDecay`
  branches.
- `LevelScheme.can_feed(index, considered)` follows gamma cascades to test
  whether one state can reach another.
- `GammaSource.load(path)` builds a source and normalises the population
  probabilities of its states. `GammaSource.choose_state(rng)` draws a state.

### `clxsim.excitation`

- `read_probability_table` reads a grid of excitation probabilities over beam
  energy and scattering angle. The result is a `ProbabilityTable`.
- `ProbabilityTable.renormalize` rescales the table to a single state of
  interest and keeps every state that can feed it.
- `ProbabilityTable.renormalize_simple` does the same without feeding.
- `Excitation` ties a level scheme to its table:
  - `build_level_scheme()` builds the scheme.
  - `build_probabilities()` builds the table and its interpolation.
  - `choose_state(energy, theta, rng)` draws the populated state by bicubic
    interpolation. Energies and angles outside the grid are clamped to it, and
    a warning is logged.

### `clxsim.commands`

- `CommandRegistry` maps command paths to handlers.
- `build_registry(construction, projectile, recoil, source)` registers these
  commands:
  - `/Geometry/...`
  - `/Excitation/Projectile/...`
  - `/Excitation/Recoil/...`
  - `/Source/...`
- `parse_quantity` reads values with units, such as `3 cm`, `882 nm`,
  `11.382 g/cm3` or `207.97 g/mole`.
- Bad commands and bad arguments raise `CommandError`.

## Installation

Install the package with any Python package installer. It needs Python 3.10 or
later, NumPy and SciPy.

## Command line

```
clxsim run.mac
```

The command reads the macro file.

1. It keeps lines that mention `/Geometry`, `/Output` or `/run` up to the first
   `/run/beamOn`, and applies them in order. Each message is printed.
2. Lines with no registered command are reported on standard error and
   skipped. This includes the `/Output` lines and the `/run` lines other than
   `/run/beamOn`.
3. It prints the number of sensitive volumes and the target parameters.
4. It prints the number of events that `/run/beamOn` asks for.

It exits with status 1 in these cases:

- no file is given;
- the file cannot be read;
- the macro has no `/run/beamOn`.

`master_commands(lines)` does the same line selection from Python.

A macro might contain:

```
/Geometry/SeGA/Construct
/Geometry/S3/Construct
/Geometry/S3/UpstreamOffset 3.4 cm
/Geometry/S3/DownstreamOffset 2.6 cm
/Geometry/Target/Construct
/Geometry/Target/StandardTarget 48Ti
/run/beamOn 100000
```

## What the package does not do

- **No particle transport.** The command configures a setup and reports it.
  It does not track particles through matter and does not produce events.
- **No histograms or spectrum files.** Built events are not turned into
  histograms or spectrum files.
- **No interactive session.** There is no interactive session and no
  visualisation.

## File formats

### Level schemes

Each state is one line:

```
index  energy[keV]  spin  lifetime[ps]  n_branches
```

It is followed by one line per decay branch:

```
final_index  branching_ratio  L0  Lp  delta  conversion_coefficient
```

- Index 0 is the ground state, and excited states start at 1.
- A state listed out of order causes a warning to be logged.
- A branch to a state not yet defined raises `ValueError`.
- Blank lines are skipped.
- A gamma-ray source file has an extra population-probability column before
  `n_branches`.

### Excitation probabilities

The file is laid out as follows:

1. The first line lists the beam energies.
2. The second line lists the scattering angles.
3. The third line is ignored.
4. Each energy then has a block of lines: one line per state, holding its
   probability at each angle.
5. A blank line moves on to the next energy.

For interpolation the grid needs at least four energies and four angles. Both
must be strictly increasing.

## Python example

```python
import random

from clxsim.commands import build_registry
from clxsim.geometry import s3_segment_position, sega_segment_position
from clxsim.kinematics import Reaction, sega_sigma
from clxsim.targets import DetectorConstruction

pixel = s3_segment_position(1, 12, 5, us_offset=3.4, ds_offset=2.6)
segment = sega_segment_position(3, 17, offset=0.0)
print(pixel.theta(), pixel.phi(), pixel.angle(segment))
print(sega_sigma(1000.0))

reaction = Reaction()
theta_cm = reaction.theta_cm_from_projectile(pixel.theta(), reaction.beam_energy)
print(reaction.ke_lab(theta_cm, reaction.beam_energy))

construction = DetectorConstruction()
registry = build_registry(construction)
print(registry.apply("/Geometry/Target/StandardTarget 48Ti"))
print(registry.apply("/Geometry/S3/UpstreamOffset 3.4 cm"))
```

## Running the tests

Install the `test` extra, then run pytest from the project directory.