import math
import subprocess

import pytest

from sense.core.config import RegistryQuery
from sense.sensor.ioreg_hinge import (
    RegistryHingeAngleReader, angle_candidates, normalize_registry_angle, parse_angle, select_angle,
)


HINGE_DUMP = """
+-o AppleEmbeddedHinge  <class AppleEmbeddedHinge, id 0x100000a1c, registered, matched, active>
    {
      "IOClass" = "AppleEmbeddedHinge"
      "LidAngleSupported" = Yes
      "HingeAngle" = 11250
      "LidOpen" = 1
      "ClamshellFullOpenAngle" = 360
    }
"""


def completed(stdout=b"", returncode=0):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout)


class ScriptedRunner:
    """Answers ioreg invocations by their last argument (class name or depth)."""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append(cmd)
        answer = self.answers.get(cmd[-1], completed(returncode=1))
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.mark.parametrize("raw,expected", [
    (0, 0.0),
    (45, 45.0),
    (-45, 45.0),
    (180, 180.0),
    (270, 90.0),
    (360, 0.0),
    (1125, 112.5),
    (11250, 112.5),
    (112500, 112.5),
    (1.5, 1.5 * 180 / math.pi),
])
def test_normalize_registry_angle(raw, expected):
    assert normalize_registry_angle(raw) == pytest.approx(expected)


@pytest.mark.parametrize("raw", [1, 2, 3, 180_001, float("inf"), float("nan")])
def test_normalize_registry_angle_rejects(raw):
    assert normalize_registry_angle(raw) is None


def test_select_prefers_realistic_band():
    assert select_angle([0, 1, 45, 360]) == 45


def test_select_upper_median_of_band():
    assert select_angle([5, 150, 170]) == 150
    assert select_angle([20, 30, 40, 50]) == 40


def test_select_falls_back_to_all_candidates():
    assert select_angle([0, 5, 170, 175]) == 170
    assert select_angle([]) is None


def test_candidates_from_both_patterns():
    # a quoted pair also matches the bare pattern, so it counts twice
    text = '"LidAngle" = 90\nhinge_angle=1000\nsomething display pitch =  -30\n"Unrelated" = 5'
    assert sorted(angle_candidates(text)) == [30.0, 90.0, 90.0, 100.0]


def test_parse_angle_from_dump():
    # candidates: 112.5 (HingeAngle) and 0 (ClamshellFullOpenAngle=360 folded)
    assert parse_angle(HINGE_DUMP) == pytest.approx(112.5)


def test_reader_uses_first_class_with_an_angle():
    runner = ScriptedRunner({
        "AppleEmbeddedHinge": completed(b"no angles here"),
        "AppleHIDTransportHIDEventService": completed(HINGE_DUMP.encode()),
    })
    reader = RegistryHingeAngleReader(runner=runner)

    assert reader.read_angle_degrees() == pytest.approx(112.5)
    assert runner.calls == [
        ["/usr/sbin/ioreg", "-r", "-l", "-w", "0", "-c", "AppleEmbeddedHinge"],
        ["/usr/sbin/ioreg", "-r", "-l", "-w", "0", "-c", "AppleHIDTransportHIDEventService"],
    ]


def test_reader_falls_back_to_shallow_dump():
    runner = ScriptedRunner({"2": completed(b'"LidAngle" = 75')})
    reader = RegistryHingeAngleReader(runner=runner)

    assert reader.read_angle_degrees() == pytest.approx(75.0)
    assert runner.calls[-1] == ["/usr/sbin/ioreg", "-r", "-l", "-w", "0", "-d", "2"]
    assert len(runner.calls) == 5


def test_reader_failures_are_no_data():
    runner = ScriptedRunner({
        "AppleEmbeddedHinge": FileNotFoundError("ioreg"),
        "AppleHIDTransportHIDEventService": completed(b'"LidAngle" = 75', returncode=1),
        "AppleHIDEventService": completed(b'"LidAngle" = \xff\xfe'),
        "IOPMrootDomain": completed(b""),
    })
    reader = RegistryHingeAngleReader(RegistryQuery(tool="ioreg"), runner=runner)
    assert reader.read_angle_degrees() is None
    assert runner.calls[0][0] == "ioreg"
