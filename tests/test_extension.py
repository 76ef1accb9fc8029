# /*
# Copyright 2026 The k8s-hook Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

import copy

import pytest

from conftest import FIXTURES
from k8s_hook.errors import ExtensionError
from k8s_hook.extension import apply_extension, load_extension, merge_extension


def _pod():
    return {
        "metadata": {"name": "runner-workflow", "labels": {"runner-pod": "runner"}},
        "spec": {
            "serviceAccountName": "default-sa",
            "containers": [
                {
                    "name": "job",
                    "env": [{"name": "CI", "value": "true"}],
                    "volumeMounts": [{"name": "work", "mountPath": "/__w"}],
                }
            ],
            "volumes": [{"name": "work", "persistentVolumeClaim": {"claimName": "runner-work"}}],
        },
    }


class TestLoadExtension:
    def test_loads_fixture(self):
        extension = load_extension(FIXTURES / "extension.yaml")
        assert extension["spec"]["serviceAccountName"] == "hook-runner"

    def test_empty_file_is_empty_extension(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert load_extension(path) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(ExtensionError, match="Failed to read"):
            load_extension(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("spec: [unclosed\n")
        with pytest.raises(ExtensionError, match="Failed to parse"):
            load_extension(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ExtensionError, match="must be a mapping"):
            load_extension(path)


class TestMergeExtension:
    def test_volumes_appended(self):
        pod = _pod()
        merge_extension(pod, {"spec": {"volumes": [{"name": "cache", "emptyDir": {}}]}})
        assert [v["name"] for v in pod["spec"]["volumes"]] == ["work", "cache"]

    def test_volumes_appended_twice_when_applied_twice(self):
        pod = _pod()
        extension = {"spec": {"volumes": [{"name": "cache", "emptyDir": {}}]}}
        merge_extension(pod, extension)
        merge_extension(pod, extension)
        assert [v["name"] for v in pod["spec"]["volumes"]] == ["work", "cache", "cache"]

    def test_service_account_replaced_when_set(self):
        pod = _pod()
        merge_extension(pod, {"spec": {"serviceAccountName": "builder"}})
        assert pod["spec"]["serviceAccountName"] == "builder"

    def test_empty_service_account_keeps_existing(self):
        pod = _pod()
        merge_extension(pod, {"spec": {"serviceAccountName": ""}})
        assert pod["spec"]["serviceAccountName"] == "default-sa"

    def test_trivial_extension_is_idempotent(self):
        pod = _pod()
        extension = {"spec": {"serviceAccountName": "", "volumes": []}}
        merge_extension(pod, extension)
        once = copy.deepcopy(pod)
        merge_extension(pod, extension)
        assert pod == once == _pod()

    def test_labels_and_annotations_override(self):
        pod = _pod()
        merge_extension(pod, {"metadata": {"labels": {"runner-pod": "other", "team": "ci"},
                                           "annotations": {"a": "b"}}})
        assert pod["metadata"]["labels"] == {"runner-pod": "other", "team": "ci"}
        assert pod["metadata"]["annotations"] == {"a": "b"}

    def test_job_container_env_and_mounts_appended(self):
        pod = _pod()
        merge_extension(pod, {"spec": {"containers": [
            {"name": "$job", "env": [{"name": "X", "value": "1"}],
             "volumeMounts": [{"name": "cache", "mountPath": "/cache"}]},
            {"name": "other", "env": [{"name": "Y", "value": "2"}]},
        ]}})
        job = pod["spec"]["containers"][0]
        assert [e["name"] for e in job["env"]] == ["CI", "X"]
        assert [m["mountPath"] for m in job["volumeMounts"]] == ["/__w", "/cache"]
        assert len(pod["spec"]["containers"]) == 1

    def test_container_name_must_match_exactly(self):
        pod = _pod()
        merge_extension(pod, {"spec": {"containers": [{"name": "job", "env": [{"name": "X", "value": "1"}]}]}})
        assert [e["name"] for e in pod["spec"]["containers"][0]["env"]] == ["CI"]

    def test_pod_without_containers_is_left_alone(self):
        pod = {"metadata": {}, "spec": {"containers": []}}
        merge_extension(pod, {"spec": {"containers": [{"name": "$job", "env": [{"name": "X", "value": "1"}]}]}})
        assert pod["spec"]["containers"] == []

    def test_unrelated_fields_ignored(self):
        pod = _pod()
        merge_extension(pod, {"spec": {"hostNetwork": True, "nodeSelector": {"a": "b"}}})
        assert pod == _pod()


class TestExtensionShape:
    @pytest.mark.parametrize("extension", [
        {"spec": [1, 2]},
        {"metadata": "runner"},
        {"metadata": {"labels": ["a=b"]}},
        {"metadata": {"annotations": "a"}},
        {"spec": {"volumes": {"name": "cache"}}},
        {"spec": {"serviceAccountName": ["sa"]}},
        {"spec": {"containers": {"name": "$job"}}},
        {"spec": {"containers": ["oops"]}},
        {"spec": {"containers": [{"name": "$job", "env": {"X": "1"}}]}},
        {"spec": {"containers": [{"name": "$job", "volumeMounts": "/cache"}]}},
    ])
    def test_malformed_fields_rejected(self, extension):
        pod = _pod()
        with pytest.raises(ExtensionError):
            merge_extension(pod, extension)
        assert pod == _pod()

    def test_malformed_file_rejected(self, tmp_path):
        path = tmp_path / "ext.yaml"
        path.write_text("spec:\n  containers:\n    - oops\n")
        with pytest.raises(ExtensionError, match=r"spec.containers\[0\]"):
            apply_extension(_pod(), path)


def test_apply_extension_from_file():
    pod = _pod()
    apply_extension(pod, FIXTURES / "extension.yaml")

    assert pod["spec"]["serviceAccountName"] == "hook-runner"
    assert pod["metadata"]["labels"] == {"runner-pod": "overridden", "team": "ci"}
    assert pod["metadata"]["annotations"] == {"example.com/owner": "platform"}
    job = pod["spec"]["containers"][0]
    assert job["env"][-1] == {"name": "FROM_EXTENSION", "value": "yes"}
    assert job["volumeMounts"][-1] == {"name": "cache", "mountPath": "/cache"}
    assert all(e["name"] != "IGNORED" for e in job["env"])
