# tests/walletpass/bundle/test_bundle_property.py
from __future__ import annotations
import hashlib
import json

import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import HealthCheck, given, settings, strategies as st  # type: ignore[no-redef]

from walletpass.bundle.localization import buildStringsFile
from walletpass.bundle.manifest import buildManifest, verifyManifest
from walletpass.bundle.members import BundleMember
from walletpass.bundle.merge import MergePolicy, isValidRGB, mergeProperties

# isolatedSettings is autouse and function scoped; examples share it
relaxed = settings(suppress_health_check=[HealthCheck.function_scoped_fixture], max_examples=60)

channel_strat = st.integers(min_value=0, max_value=999)

key_strat = st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ_", min_size=1, max_size=10)

name_strat = st.text(alphabet="abcdefghijklmnopqrstuvwxyz0123456789_-", min_size=1, max_size=12)


@relaxed
@given(channel_strat, channel_strat, channel_strat)
def test_isValidRGB_matchesChannelRange(r: int, g: int, b: int) -> None:
    assert isValidRGB(f"rgb({r}, {g}, {b})") is all(channel <= 255 for channel in (r, g, b))


@relaxed
@given(st.dictionaries(key_strat, st.text(), min_size=1, max_size=6))
def test_buildStringsFile_oneLinePerEntry(translations: dict[str, str]) -> None:
    lines = buildStringsFile(translations).decode("utf-8").split("\n")
    assert len(lines) == len(translations)
    for line, key in zip(lines, translations):
        assert line.startswith(f'"{key}" = "') and line.endswith('";')


@relaxed
@given(st.dictionaries(name_strat, st.binary(max_size=64), min_size=1, max_size=8))
def test_manifest_coversEveryMemberOnce(files: dict[str, bytes]) -> None:
    members = [BundleMember(name=f"{name}.png", content=content) for name, content in files.items()]
    manifest = buildManifest(members)
    verifyManifest(manifest, members)
    assert len(manifest) == len(files)
    assert json.loads(manifest.toBytes()) == {
        f"{name}.png": hashlib.sha1(content).hexdigest() for name, content in files.items()
    }


@relaxed
@given(
    st.dictionaries(key_strat, st.integers(), max_size=5),
    st.dictionaries(key_strat, st.integers() | st.none(), max_size=5),
)
def test_mergeProperties_overwriteAppliesEveryPendingValue(descriptor: dict, props: dict) -> None:
    merged = mergeProperties(descriptor, props, MergePolicy.OVERWRITE)
    for name, value in props.items():
        if value is None:
            assert name not in merged
        else:
            assert merged[name] == value
    for name, value in descriptor.items():
        if name not in props:
            assert merged[name] == value
