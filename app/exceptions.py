"""커스텀 예외 클래스 정의"""


class BaseAppError(Exception):
    """애플리케이션 기본 예외 클래스"""

    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(BaseAppError):
    """답안 페이로드가 문제 유형과 맞지 않을 때 (400)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class QuizNotFoundError(BaseAppError):
    """퀴즈를 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, quiz_id: int):
        super().__init__(f"퀴즈를 찾을 수 없습니다: {quiz_id}", status_code=404)


class QuizDefinitionInvalidError(BaseAppError):
    """퀴즈 정의가 응시/저장 가능한 상태가 아닐 때 (400)"""

    def __init__(self, message: str):
        super().__init__(message, status_code=400)


class AttemptNotFoundError(BaseAppError):
    """응시 기록을 찾을 수 없을 때 발생하는 예외 (404)"""

    def __init__(self, attempt_id: int):
        super().__init__(f"응시 기록을 찾을 수 없습니다: {attempt_id}", status_code=404)


class ResultNotFoundError(BaseAppError):
    """아직 채점 결과가 없을 때 (404)"""

    def __init__(self, attempt_id: int):
        super().__init__(f"채점 결과가 없습니다: {attempt_id}", status_code=404)


class AttemptLimitExceeded(BaseAppError):
    """최대 응시 횟수를 모두 사용했을 때 (409)"""

    def __init__(self, quiz_id: int, max_attempts: int):
        self.quiz_id = quiz_id
        self.max_attempts = max_attempts
        super().__init__(
            f"최대 응시 횟수({max_attempts}회)를 초과했습니다: quiz_id={quiz_id}",
            status_code=409,
        )


class AttemptAlreadyActive(BaseAppError):
    """같은 퀴즈에 진행 중인 응시가 이미 있을 때 (409)"""

    def __init__(self, quiz_id: int, attempt_id: int | None = None):
        self.attempt_id = attempt_id
        super().__init__(
            f"이미 진행 중인 응시가 있습니다: quiz_id={quiz_id}, attempt_id={attempt_id}",
            status_code=409,
        )


class EmptyAttempt(BaseAppError):
    """답안 없이 제출하려 할 때 (400)"""

    def __init__(self, attempt_id: int):
        super().__init__(f"최소 한 문제 이상 답해야 제출할 수 있습니다: {attempt_id}", status_code=400)


class InvalidStateTransition(BaseAppError):
    """현재 응시 상태에서 허용되지 않는 동작 (409)"""

    def __init__(self, attempt_id: int, current_status: str, action: str):
        self.attempt_id = attempt_id
        self.current_status = current_status
        self.action = action
        super().__init__(
            f"'{current_status}' 상태의 응시에는 '{action}'을(를) 수행할 수 없습니다: {attempt_id}",
            status_code=409,
        )


class StaleQuizDefinition(BaseAppError):
    """응시 시작 이후 퀴즈 정의가 변경/삭제되었을 때 (409)

    응시 자체는 시작 시점 스냅샷 기준으로 계속 진행된다.
    """

    def __init__(self, attempt_id: int, snapshot_version: int, client_version: int | None):
        self.snapshot_version = snapshot_version
        super().__init__(
            f"퀴즈 정의가 응시 시작 이후 변경되었습니다 "
            f"(응시 버전={snapshot_version}, 요청 버전={client_version}): {attempt_id}",
            status_code=409,
        )
