"""등록 핸들러 모듈 (load_handlers가 하위 모듈을 재귀적으로 import)"""
