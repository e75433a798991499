from splitledger.config.loader import fee_schedule_from_dict, load_fee_schedule

__all__ = ["load_fee_schedule", "fee_schedule_from_dict"]
