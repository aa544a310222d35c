"""
Command invokers - run one external checker command and report its exit code.

Every invoker exposes the same two operations:

- ``workspace(trigger, environment)``: async context manager yielding the
  working directory for one environment run (or None when the backend
  provides its own).
- ``invoke(command, env, context)``: run the command once and return a
  CommandResult. Raises StepLaunchError when the process cannot start and
  EnvironmentTimeout when the wall-clock bound is exceeded.
"""

import asyncio
import logging
import os
import shutil
import signal
import subprocess
import sys
import tempfile
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Mapping, Optional, Protocol

from pydantic import BaseModel
from kubernetes.client.rest import ApiException

from controller.src.config import get_settings
from controller.src.errors import EnvironmentTimeout, StepLaunchError
from controller.src.models.pipeline import Environment, Platform, Trigger
from controller.src.models.step import CommandResult, StepConfig

logger = logging.getLogger(__name__)

class StepContext(BaseModel):
    """Where and under which bounds a step runs."""
    run_id: str
    environment: Environment
    stage: str
    step: StepConfig
    order: int
    cwd: Optional[str] = None
    timeout: int = 1800
    trigger: Optional[Trigger] = None

class Invoker(Protocol):
    def workspace(self, trigger: Trigger, environment: Environment):
        ...

    async def invoke(self, command: str, env: Dict[str, str], context: StepContext) -> CommandResult:
        ...

def scoped_environment(base: Optional[Mapping[str, str]], *overlays: Mapping[str, str]) -> Dict[str, str]:
    """
    Build the variable set for a single invocation.
    Returns a fresh mapping; the ambient process environment is left untouched.
    """
    merged = dict(os.environ if base is None else base)
    for overlay in overlays:
        if overlay:
            merged.update({key: str(value) for key, value in overlay.items()})
    return merged

def clone_repository(clone_url: str, commit_sha: str, repo_path: str):
    """Clone repository into repo_path and check out commit_sha."""
    try:
        subprocess.run(
            ["git", "clone", "--depth", "1", clone_url, repo_path],
            check=True,
            capture_output=True,
            timeout=120
        )

        if commit_sha:
            subprocess.run(
                ["git", "fetch", "--depth", "1", "origin", commit_sha],
                cwd=repo_path,
                capture_output=True,
                timeout=60
            )
            subprocess.run(
                ["git", "checkout", commit_sha],
                cwd=repo_path,
                check=True,
                capture_output=True,
                timeout=30
            )
    except subprocess.TimeoutExpired:
        raise StepLaunchError("Repository clone timed out")
    except subprocess.CalledProcessError as e:
        raise StepLaunchError(f"Failed to clone repository: {e.stderr.decode(errors='replace')}")

def host_platform() -> Optional[Platform]:
    """Platform of the machine this process runs on, None if unsupported."""
    if sys.platform.startswith("linux"):
        return Platform.LINUX
    if sys.platform == "win32":
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.MACOS
    return None

def kill_process_tree(process: asyncio.subprocess.Process):
    """Kill a shell started by LocalInvoker together with everything it spawned."""
    try:
        if os.name == "nt":
            subprocess.run(
                ["taskkill", "/T", "/F", "/PID", str(process.pid)],
                capture_output=True,
                timeout=30
            )
        else:
            # The shell leads its own session, so its pid is the group id
            os.killpg(process.pid, signal.SIGKILL)
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning(f"Could not kill process tree of {process.pid}: {e}")

    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass

class LocalInvoker:
    """Runs commands on this host through the platform shell."""

    inherits_environment = True

    def __init__(self, source_dir: Optional[str] = None):
        self.source_dir = source_dir or get_settings().source_dir

    def check_platform(self, environment: Environment):
        host = host_platform()
        if environment.platform != host:
            raise StepLaunchError(
                f"Environment '{environment.id}' targets {environment.platform.value} "
                f"but this host is {host.value if host else sys.platform}"
            )

    @asynccontextmanager
    async def workspace(self, trigger: Trigger, environment: Environment) -> AsyncIterator[Optional[str]]:
        self.check_platform(environment)

        if not trigger.clone_url:
            yield self.source_dir
            return

        temp_dir = tempfile.mkdtemp(prefix=f"gatekeeper_{environment.id}_")
        repo_path = os.path.join(temp_dir, "repo")
        try:
            logger.info(f"Cloning {trigger.clone_url}@{trigger.commit_sha or 'HEAD'} for {environment.id}")
            await asyncio.to_thread(clone_repository, trigger.clone_url, trigger.commit_sha, repo_path)
            yield repo_path
        finally:
            shutil.rmtree(temp_dir, ignore_errors=True)

    async def invoke(self, command: str, env: Dict[str, str], context: StepContext) -> CommandResult:
        self.check_platform(context.environment)

        if os.name == "nt":
            group = {"creationflags": subprocess.CREATE_NEW_PROCESS_GROUP}
        else:
            group = {"start_new_session": True}

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                cwd=context.cwd,
                env=env,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                **group,
            )
        except OSError as e:
            raise StepLaunchError(f"Failed to start '{command}': {e}")

        try:
            stdout, _ = await asyncio.wait_for(process.communicate(), timeout=context.timeout)
        except asyncio.TimeoutError:
            logger.error(f"Step '{context.step.name}' exceeded {context.timeout}s, killing it")
            kill_process_tree(process)
            await process.wait()
            raise EnvironmentTimeout(command, context.timeout)
        except asyncio.CancelledError:
            kill_process_tree(process)
            raise

        return CommandResult(
            exit_code=process.returncode,
            output=stdout.decode("utf-8", errors="replace") if stdout else "",
        )

def build_checkout_script(trigger: Optional[Trigger], command: str) -> str:
    """Prefix a command with a shallow checkout of the trigger commit."""
    if trigger is None or not trigger.clone_url:
        return command

    commands = [f"git clone --depth 1 {trigger.clone_url} repo", "cd repo"]
    if trigger.commit_sha:
        commands.append(f"git fetch --depth 1 origin {trigger.commit_sha}")
        commands.append(f"git checkout {trigger.commit_sha}")
    commands.append(command)
    return " && ".join(commands)

class KubernetesInvoker:
    """Runs each step as a Kubernetes Job on a node of the environment's platform."""

    poll_interval = 2
    # Pods get only declared variables, never the controller's own environment
    inherits_environment = False

    def __init__(self):
        self.settings = get_settings()

    @asynccontextmanager
    async def workspace(self, trigger: Trigger, environment: Environment) -> AsyncIterator[Optional[str]]:
        # Each job checks out the sources inside its own pod
        yield None

    def image_for(self, environment: Environment, step: StepConfig) -> str:
        if step.image:
            return step.image
        if environment.image:
            return environment.image
        if environment.platform == Platform.WINDOWS:
            return self.settings.default_image_windows
        return self.settings.default_image_linux

    async def invoke(self, command: str, env: Dict[str, str], context: StepContext) -> CommandResult:
        from controller.src.k8s import build_job, get_batch_api, delete_job, has_nodes_for_platform
        from controller.src.services.log_collector import collect_logs, get_job_exit_code

        environment = context.environment
        if not await asyncio.to_thread(has_nodes_for_platform, environment.platform.value):
            raise StepLaunchError(f"No Kubernetes nodes available for platform '{environment.platform.value}'")

        job = build_job(
            run_id=context.run_id,
            environment_id=environment.id,
            platform=environment.platform,
            step_order=context.order,
            step_name=context.step.name,
            image=self.image_for(environment, context.step),
            script=build_checkout_script(context.trigger, command),
            env_vars=env,
            timeout=context.timeout,
        )
        job_name = job.metadata.name
        logger.info(f"Creating job {job_name}")

        try:
            await asyncio.to_thread(
                get_batch_api().create_namespaced_job,
                namespace=self.settings.k8s_namespace,
                body=job,
            )
        except ApiException as e:
            raise StepLaunchError(f"Failed to create job {job_name}: {e.reason}")

        finished = await self.wait_for_job(job_name, context.timeout)
        logs = await collect_logs(job_name)

        if not finished:
            await asyncio.to_thread(delete_job, job_name)
            raise EnvironmentTimeout(command, context.timeout, output=logs)

        exit_code = await get_job_exit_code(job_name)
        return CommandResult(exit_code=1 if exit_code is None else exit_code, output=logs)

    async def wait_for_job(self, job_name: str, timeout: int) -> bool:
        """
        Wait for a job to reach a terminal state.
        Returns True once it finished (either way), False if it timed out.
        """
        from controller.src.k8s import get_batch_api, get_job_status

        batch_v1 = get_batch_api()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while loop.time() < deadline:
            try:
                job = await asyncio.to_thread(
                    batch_v1.read_namespaced_job,
                    name=job_name,
                    namespace=self.settings.k8s_namespace,
                )
                if get_job_status(job) in ("succeeded", "failed"):
                    return True
            except ApiException as e:
                logger.error(f"Error checking job status: {e}")

            await asyncio.sleep(self.poll_interval)

        logger.error(f"Job {job_name} timed out after {timeout}s")
        return False

def get_invoker(backend: Optional[str] = None) -> Invoker:
    """Return the invoker for the configured executor backend."""
    backend = backend or get_settings().executor_backend
    if backend == "local":
        return LocalInvoker()
    if backend == "kubernetes":
        return KubernetesInvoker()
    raise ValueError(f"Unknown executor backend: {backend}")
