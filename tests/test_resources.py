from __future__ import annotations

from core.domain.resources import CATEGORY_BY_NAME, classify_object, container_name

CPU = CATEGORY_BY_NAME["cpu"]
DISK = CATEGORY_BY_NAME["disk"]
DOCKER = CATEGORY_BY_NAME["docker"]
SHARE = CATEGORY_BY_NAME["share"]
VM = CATEGORY_BY_NAME["vm"]


def test_cores_are_keyed_by_position():
    keyed = CPU.keyed_items([{"percentTotal": 1}, {"percentTotal": 2}])
    assert list(keyed) == ["0", "1"]


def test_array_members_use_idx_with_positional_fallback():
    first = {"idx": 3, "name": "disk3"}
    second = {"name": "no-index"}
    duplicate = {"idx": 3, "name": "other"}
    keyed = DISK.keyed_items([first, second, duplicate])
    assert keyed == {"3": first, "1": second}


def test_array_member_idx_is_sanitized():
    dotted = {"idx": "1.5", "name": "disk1"}
    floating = {"idx": 2.5, "name": "disk2"}
    reserved = {"idx": "count", "name": "disk3"}
    keyed = DISK.keyed_items([dotted, floating, reserved])
    assert keyed == {"1_5": dotted, "2_5": floating, "2": reserved}
    assert classify_object("array.disks.1_5.name") == (DISK, "1_5")


def test_workloads_are_keyed_by_first_name():
    items = [{"names": ["/web", "/alias"]}, {"names": []}, {"names": ["/my app"]}, {"image": "x"}]
    assert set(DOCKER.keyed_items(items)) == {"web", "my_app"}
    assert container_name({"names": ["/db"]}) == "db"
    assert container_name({"names": [7]}) is None


def test_collisions_get_suffixes_independent_of_order():
    items = [{"name": "my.share"}, {"name": "my share"}, {"name": "my_share"}]
    keyed = SHARE.keyed_items(items)
    assert {key: item["name"] for key, item in keyed.items()} == {
        "my_share": "my_share",
        "my_share_2": "my share",
        "my_share_3": "my.share",
    }
    assert SHARE.keyed_items(list(reversed(items))) == keyed


def test_reserved_key_is_never_used():
    assert set(VM.keyed_items([{"name": "count"}])) == {"count_2"}


def test_extract_distinguishes_absent_root_from_empty_collection():
    assert DOCKER.extract({}) is None
    assert DOCKER.extract({"docker": None}) == []
    assert DOCKER.extract({"docker": {"containers": "oops"}}) == []
    assert DOCKER.extract({"docker": {"containers": [{"names": ["/a"]}, 5]}}) == [{"names": ["/a"]}]
    assert VM.extract({"vms": {"domains": [{"name": "win"}]}}) == [{"name": "win"}]
    assert SHARE.extract({"shares": [{"name": "media"}]}) == [{"name": "media"}]


def test_classify_object():
    assert classify_object("docker.containers.web.state") == (DOCKER, "web")
    assert classify_object("docker.containers.web") == (DOCKER, "web")
    assert classify_object("metrics.cpu.cores.3.percentTotal") == (CPU, "3")
    assert classify_object("shares.media.usedGb") == (SHARE, "media")
    assert classify_object("docker.containers.count") is None
    assert classify_object("docker.containers") is None
    assert classify_object("metrics.cpu.percentTotal") is None
    assert classify_object("info.time") is None


def test_container_labels():
    assert DISK.container_label("1") == "Disk 1"
    assert CPU.container_label("0") == "Core 0"
    assert DOCKER.container_label("web") == "web"
