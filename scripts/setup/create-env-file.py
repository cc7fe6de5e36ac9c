#!/usr/bin/env python3
"""로컬 개발용 .env 파일 생성"""
import os
from pathlib import Path

project_root = Path(__file__).parent.parent.parent
env_file = project_root / ".env"

# 실제 DB 계정은 수동으로 입력해야 함
env_content = """# Database
DATABASE_URL=postgresql+asyncpg://<DB_USER>:<DB_PASSWORD>@localhost:5432/quiz_db

# CORS
ALLOWED_ORIGINS=http://localhost:5173,http://localhost:3000

# Environment
# development 에서는 상세 에러 메시지가 응답에 포함됨
ENVIRONMENT=development

# 응시 타이머 워치독
WATCHDOG_ENABLED=true
WATCHDOG_TICK_SECONDS=1.0

# 상위 인증 계층이 사용자 ID를 넣어 주는 헤더
USER_ID_HEADER=X-User-Id
PORT=8001
"""


def create_env_file():
    """.env 파일 생성 (UTF-8, BOM 없음)"""
    print(f"[INFO] .env 파일 생성 중: {env_file}")

    # 기존 파일이 있으면 백업
    if env_file.exists():
        backup_file = project_root / ".env.backup"
        print(f"[INFO] 기존 .env 파일 백업: {backup_file}")
        backup_file.write_text(env_file.read_text(encoding="utf-8"), encoding="utf-8", newline="\n")

    with open(env_file, "w", encoding="utf-8", newline="\n") as f:
        f.write(env_content)

    print("[OK] .env 파일 생성 완료")
    print(f"[INFO] 파일 위치: {env_file}")

    if os.name != "nt":
        os.chmod(env_file, 0o600)
        print("[INFO] 파일 권한 설정: 600")


if __name__ == "__main__":
    try:
        create_env_file()
        print("\n[OK] 작업 완료")
    except OSError as e:
        print(f"\n[ERROR] 에러 발생: {e.__class__.__name__}: {str(e)}")
        raise SystemExit(1)
