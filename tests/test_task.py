"""
Tests for SubmissionTask building, serialization and execution.
"""

import json
import pickle
from unittest.mock import Mock, patch

import pytest

from almreporter.client.auth import APIAuthType, AuthInfoAPIKey
from almreporter.client.exceptions import APIConnectionError, InvalidAPIAddressError
from almreporter.client.models import ReportFormatType, SubmitBuildResponse
from almreporter.publish.task import (
    SOURCE_OVERRIDE,
    SubmissionTask,
    build_metadata,
    build_properties,
    build_test_run_set,
    execute,
    property_display_name,
)


def make_task(**overrides):
    values = dict(
        api_address="https://alm.example.com",
        auth_type=APIAuthType.API_KEY,
        user_id="key-id",
        user_secret="key-secret",
        authorization_header="Bearer abc",
        project_id="p-1",
        automation_suite_id=7,
        build_number=15,
        job_name="nightly",
        queue_id="99",
        report_files=["/ws/a.xml", "/ws/b.xml"],
        report_format="junit",
        environment={"BUILD_TAG": "jenkins-nightly-15", "JOB_NAME": "nightly", "PATH": "/bin"},
        parameters=[("TARGET", "staging"), ("EMPTY", None)],
        certificates=["PEM-1"],
        external_url="https://ci.example.com/job/nightly/15/",
    )
    values.update(overrides)
    return SubmissionTask.build(**values)


class TestSubmissionTask:
    """Test cases for building and serializing tasks"""

    def test_build_copies_primitives(self):
        task = make_task()

        assert task.auth_type == "api_key"
        assert task.automation_suite_id == "7"
        assert task.build_number == "15"
        assert task.report_files == ("/ws/a.xml", "/ws/b.xml")
        assert task.parameters == (("TARGET", "staging"), ("EMPTY", ""))
        assert dict(task.environment)["BUILD_TAG"] == "jenkins-nightly-15"

    def test_build_does_not_share_inputs(self):
        files = ["/ws/a.xml"]
        environment = {"JOB_NAME": "nightly"}
        task = make_task(report_files=files, environment=environment)

        files.append("/ws/late.xml")
        environment["JOB_NAME"] = "changed"

        assert task.report_files == ("/ws/a.xml",)
        assert dict(task.environment)["JOB_NAME"] == "nightly"

    def test_frozen(self):
        task = make_task()
        with pytest.raises(Exception):
            task.project_id = "other"

    def test_json_round_trip(self):
        task = make_task()
        restored = SubmissionTask.from_json(task.to_json())
        assert restored == task

    def test_json_is_plain_data(self):
        data = json.loads(make_task().to_json())
        assert data["report_files"] == ["/ws/a.xml", "/ws/b.xml"]
        assert data["certificates"] == ["PEM-1"]

    def test_pickle_round_trip(self):
        task = make_task()
        assert pickle.loads(pickle.dumps(task)) == task

    def test_secrets_not_in_repr(self):
        text = repr(make_task())
        assert "key-secret" not in text
        assert "Bearer abc" not in text

    def test_unknown_report_format_dropped(self):
        assert make_task(report_format="cucumber").report_format is None


class TestBuildMetadata:
    """Test cases for the metadata sent with a build"""

    def test_display_name(self):
        assert property_display_name("BUILD_TAG") == "Build tag"
        assert property_display_name("JAVA_HOME") == "Java home"

    @patch("almreporter.publish.task.platform.system", return_value="Darwin")
    def test_properties(self, mock_system):
        properties = build_properties(make_task())
        names = [p.name for p in properties]

        assert names[0] == "os.type"
        assert properties[0].value == "Mac OS X"
        assert "Build tag" in names
        assert "Job name" in names
        assert "Node name" not in names
        assert names[-1] == "Environment Variables"
        assert "PATH=/bin" in properties[-1].value

    def test_run_set_by_id(self):
        pair = build_test_run_set(make_task(test_run_set_id=3, test_run_set_label="Regression"))
        assert (pair.id, pair.label) == (3, "Regression")

    def test_run_set_by_label_only(self):
        pair = build_test_run_set(make_task(test_run_set_label="Regression"))
        assert (pair.id, pair.label) == (-1, "Regression")

    def test_no_run_set(self):
        assert build_test_run_set(make_task()) is None

    def test_metadata(self):
        metadata = build_metadata(make_task(branch="main"))

        assert metadata.pending_run_id == "99"
        assert metadata.source_override == SOURCE_OVERRIDE
        assert metadata.branch == "main"
        assert metadata.description is None
        assert metadata.external_url == "https://ci.example.com/job/nightly/15/"
        assert [(p.name, p.text) for p in metadata.build_parameters] == [("TARGET", "staging"), ("EMPTY", "")]


class TestExecute:
    """Test cases for executing a task against a mocked client"""

    def setup_method(self):
        self.client = Mock()
        self.client.__enter__ = Mock(return_value=self.client)
        self.client.__exit__ = Mock(return_value=None)
        self.client_factory = Mock(return_value=self.client)

    def test_success(self):
        self.client.submit_build.return_value = SubmitBuildResponse(build_id=42, status_code=201)

        result = execute(make_task(), client_factory=self.client_factory)

        assert not result.is_error
        assert result.build_id == 42
        args, kwargs = self.client_factory.call_args
        assert args == ("https://alm.example.com", AuthInfoAPIKey("key-id", "key-secret"), ["PEM-1"])
        self.client.submit_build.assert_called_once()
        build_number, report_context, suite_context, metadata = self.client.submit_build.call_args[0]
        assert build_number == "15"
        assert report_context.report_format is ReportFormatType.JUNIT
        assert (suite_context.project_id, suite_context.suite_id) == ("p-1", "7")
        assert self.client.submit_build.call_args[1]["authorization"] == "Bearer abc"

    def test_remote_error_returned(self):
        self.client.submit_build.return_value = SubmitBuildResponse(error="suite not found", status_code=404)

        result = execute(make_task(), client_factory=self.client_factory)

        assert result.is_error
        assert result.error == "suite not found"

    def test_transport_error_returned(self):
        self.client.submit_build.side_effect = APIConnectionError("Cannot connect")

        result = execute(make_task(), client_factory=self.client_factory)

        assert result.is_error
        assert "Cannot connect" in result.error

    def test_malformed_address_raises(self):
        with pytest.raises(InvalidAPIAddressError):
            execute(make_task(api_address="not a url"))
