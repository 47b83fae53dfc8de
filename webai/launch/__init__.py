from .pumpfun import PumpFunGateway, SubmitResult, VerifyResult

__all__ = ["PumpFunGateway", "SubmitResult", "VerifyResult"]
