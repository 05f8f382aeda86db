DISCOUNT_CLAIMED_EVENT = "DiscountClaimed"
