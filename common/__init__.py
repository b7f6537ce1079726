"""공통 유틸리티 (설정 로드, 로깅)"""
