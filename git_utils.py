# git_utils.py
"""
[V1.0] 进程执行器 (Process Runner)
- 在指定工作目录执行外部命令，支持 stdin 输入
- 超时与输出上限均以独立异常上报，由调用方决定是否降级
"""
import logging
import os
import subprocess
import threading
from dataclasses import dataclass
from typing import List, Optional, Sequence, Union

from config import GlobalConfig

logger = logging.getLogger(__name__)

# get_commit_diff 在输出过大时返回的哨兵值
OUTPUT_TOO_LARGE = object()


class GitCommandError(Exception):
    """外部命令执行失败的基类"""

    def __init__(self, message: str, cwd: Optional[str] = None):
        super().__init__(message)
        self.cwd = cwd


class ProcessLaunchError(GitCommandError):
    """进程无法启动 (命令不存在、无权限、工作目录无效)"""


class ProcessTimeoutError(GitCommandError):
    """进程超时，已被终止"""


class OutputTooLargeError(GitCommandError):
    """标准输出超过上限，结果被丢弃而非截断"""

    def __init__(self, message: str, cwd: Optional[str] = None, size: int = 0):
        super().__init__(message, cwd)
        self.size = size


class NonZeroExitError(GitCommandError):
    """命令以非零状态码退出"""

    def __init__(self, message: str, cwd: Optional[str] = None, result=None):
        super().__init__(message, cwd)
        self.result = result


@dataclass(frozen=True)
class ProcessResult:
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def check(self, context: str = "执行命令") -> "ProcessResult":
        """非零退出时抛出 NonZeroExitError"""
        if not self.ok:
            raise NonZeroExitError(
                f"{context}失败 (exit {self.returncode}): {self.stderr.strip()}",
                result=self,
            )
        return self


def _decode(data: Optional[bytes]) -> str:
    if not data:
        return ""
    return data.decode("utf-8", errors="replace")


# 分块读取标准输出的块大小
_READ_CHUNK = 64 * 1024
# 进程结束后等待读取线程收尾的时间
_PIPE_GRACE_SECONDS = 5


def _too_large(cmd: List[str], cwd: str, size: int, max_output: int) -> OutputTooLargeError:
    return OutputTooLargeError(
        f"命令输出过大 (> {max_output} bytes，已读取 {size}): {' '.join(cmd)}",
        cwd=cwd,
        size=size,
    )


class _OutputReader:
    """
    在后台线程中分块读取管道。
    设置了 limit 时，累计字节数一旦超过上限就终止进程并停止读取。
    """

    def __init__(self, process: subprocess.Popen, pipe, limit: Optional[int] = None):
        self.process = process
        self.pipe = pipe
        self.limit = limit
        self.chunks: List[bytes] = []
        self.size = 0
        self.overflowed = False
        self.thread = threading.Thread(target=self._read, daemon=True)
        self.thread.start()

    def _read(self):
        try:
            while True:
                chunk = self.pipe.read1(_READ_CHUNK)
                if not chunk:
                    break
                self.size += len(chunk)
                if self.limit is not None and self.size > self.limit:
                    self.overflowed = True
                    self.process.kill()
                    break
                self.chunks.append(chunk)
        finally:
            self.pipe.close()

    def join(self, timeout: Optional[float] = None):
        self.thread.join(timeout)

    @property
    def data(self) -> bytes:
        return b"".join(self.chunks)


def _feed_stdin(pipe, data: Optional[bytes]):
    try:
        if data:
            pipe.write(data)
    except (BrokenPipeError, ValueError):
        # 进程提前退出或已被终止
        pass
    finally:
        try:
            pipe.close()
        except OSError:
            pass


def run_process(
    command: str,
    args: Sequence[str],
    cwd: str,
    stdin: Optional[Union[str, bytes]] = None,
    timeout: Optional[float] = None,
    max_output: Optional[int] = None,
) -> ProcessResult:
    """
    (V1.0) 统一的外部命令执行函数
    - 每次调用启动一个进程，不做重试
    - 启动失败 / 超时 / 输出过大 分别抛出对应的 GitCommandError 子类
    - 标准输出边读边计数，超过上限立即终止进程，内存占用不超过上限
    - 非零退出码不抛异常，由调用方通过 ProcessResult.ok 判断
    """
    if max_output is None:
        max_output = GlobalConfig.MAX_OUTPUT_BYTES
    if timeout is None:
        timeout = GlobalConfig.GIT_TIMEOUT_SECONDS
    if isinstance(stdin, str):
        stdin = stdin.encode("utf-8")

    cmd: List[str] = [command, *args]
    logger.debug(f"在 {cwd} 中执行命令: {' '.join(cmd)}")
    try:
        process = subprocess.Popen(
            cmd,
            cwd=cwd,
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
        )
    except OSError as e:
        raise ProcessLaunchError(f"无法启动命令 {command}: {e}", cwd=cwd) from e

    stdout_reader = _OutputReader(process, process.stdout, limit=max_output)
    stderr_reader = _OutputReader(process, process.stderr)
    writer = threading.Thread(target=_feed_stdin, args=(process.stdin, stdin), daemon=True)
    writer.start()

    try:
        process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        # 孙进程可能仍持有管道，不无限等待读取线程
        stdout_reader.join(_PIPE_GRACE_SECONDS)
        stderr_reader.join(_PIPE_GRACE_SECONDS)
        if stdout_reader.overflowed:
            raise _too_large(cmd, cwd, stdout_reader.size, max_output) from None
        raise ProcessTimeoutError(
            f"命令超时 ({timeout}s): {' '.join(cmd)}", cwd=cwd
        ) from None

    stdout_reader.join(_PIPE_GRACE_SECONDS)
    stderr_reader.join(_PIPE_GRACE_SECONDS)
    writer.join(_PIPE_GRACE_SECONDS)
    if stdout_reader.overflowed:
        raise _too_large(cmd, cwd, stdout_reader.size, max_output)

    return ProcessResult(
        returncode=process.returncode,
        stdout=_decode(stdout_reader.data),
        stderr=_decode(stderr_reader.data),
    )




def run_git(
    args: Sequence[str],
    repo_path: str,
    stdin: Optional[Union[str, bytes]] = None,
    timeout: Optional[float] = None,
    max_output: Optional[int] = None,
) -> ProcessResult:
    """在 repo_path 下执行 git 子命令"""
    return run_process(
        "git", args, repo_path, stdin=stdin, timeout=timeout, max_output=max_output
    )


def is_git_repository(repo_path: str) -> bool:
    """检查指定路径是否为 Git 仓库根目录 (存在 .git)"""
    return os.path.exists(os.path.join(repo_path, ".git"))


def build_log_args(start_date: str, end_date: str) -> List[str]:
    return [
        arg.format(start_date=start_date, end_date=end_date)
        for arg in GlobalConfig.GIT_LOG_ARGS
    ]


def build_stats_args(start_date: str, end_date: str) -> List[str]:
    return [
        arg.format(start_date=start_date, end_date=end_date)
        for arg in GlobalConfig.GIT_STATS_ARGS
    ]


def get_commit_diff(repo_path: str, commit_hash: str):
    """
    获取单个 commit 的 diff 内容
    - 成功返回文本；失败返回 None；输出过大返回 OUTPUT_TOO_LARGE 哨兵
    """
    args = [arg.format(commit_hash=commit_hash) for arg in GlobalConfig.GIT_COMMIT_DIFF_ARGS]
    try:
        result = run_git(args, repo_path)
    except OutputTooLargeError as e:
        logger.warning(f"⚠️ {commit_hash} 的 Diff 过大，已跳过: {e}")
        return OUTPUT_TOO_LARGE
    except GitCommandError as e:
        logger.error(f"获取 {commit_hash} 的 Diff 出错: {e}")
        return None
    if not result.ok:
        logger.error(f"获取 {commit_hash} 的 Diff 失败: {result.stderr.strip()}")
        return None
    return result.stdout
