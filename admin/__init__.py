"""Admin API 모듈 - 스케줄 잡 관리"""
