"""
utils/constants.py

Purpose: Centralized static content

- All user-facing messages
- Menu keywords and command words
- Reusable constants

(Prevents hardcoding across the codebase)
"""

import re

# ============================================================
# COMMANDS & INTENTS
# ============================================================

MENU_COMMAND = "menu"

GREETING_WORDS = ("hi", "hello", "hey", "namaste", "start", "hola")
GREETING_PATTERN = re.compile(r"\b(" + "|".join(GREETING_WORDS) + r")\b", re.IGNORECASE)

SHOW_PRODUCTS_PATTERN = re.compile(r"\b(show|list|display)\b.*\b(ucf\s*)?products\b", re.IGNORECASE)
PRODUCTS_ONLY_PATTERN = re.compile(r"^\s*(ucf\s*)?products\s*$", re.IGNORECASE)

BACK_TO_MENU = '_Type "menu" to go back to main menu_'
ANYTHING_ELSE = '_Type "menu" for more options._'
ASK_ANOTHER = '_Ask another question or type "menu" to go back._'

# ============================================================
# WELCOME & ONBOARDING
# ============================================================

WELCOME_MESSAGE = """🌾 *Welcome to UCF Agri-Bot!*

Hello! I'm {bot_name}, your agricultural assistant.

May I know your name?"""

GREETING_ASK_NAME_MESSAGE = """👋 Hello! Welcome to UCF Agri-Bot!

I'm {bot_name}, your agricultural assistant. 🌾

May I know your name?"""

ASK_NAME_AGAIN_MESSAGE = "Please tell me your name so I know what to call you. 🙂"

ASK_PHONE_MESSAGE = """Thanks, {name}! 👋

Could you please share your phone number before the next step

Example: +263 798765432

_(Don't forget to add + Country Code)_"""

INVALID_PHONE_MESSAGE = """❌ That doesn't look like a phone number.

Example: +263 798765432

_(Don't forget to add + Country Code)_"""

ONBOARDING_DONE_PREFIX = "Perfect! All set. 😊\n\n"

# ============================================================
# MENUS
# ============================================================

MAIN_MENU_MESSAGE = """{greeting}

I'm {bot_name}, your agricultural assistant. How can I help you today? You can ask me anything.

*Please choose:*

1️⃣ *Crop Diagnosis* 🔬 (Premium)
   Analyze crop diseases from photos

2️⃣ *Fertilizer Calculator* 🧮 (Premium)
   Calculate fertilizer quantity & budget plan

3️⃣ *Find Shop* 📍
   Locate nearest UCF retailers

4️⃣ *Expert Help* 👨‍🌾 (Premium)
   Connect with our agronomist

5️⃣ *Exclusive Farming Guides* 📚 (Premium)
   Download premium farming guides

6️⃣ *Product Q&A* 💬
   Ask about UCF products

7️⃣ *Premium Access* 🔒
   Verify your purchase receipt

Just reply with the number or describe what you need!"""

PREMIUM_MENU_MESSAGE = """{greeting}

🌟 *Premium Access Active*

Choose your premium service:

1️⃣ *Crop Diagnosis* 🔬
   Analyze crop diseases from photos

2️⃣ *Expert Help* 👨‍🌾
   Connect with our agronomist

3️⃣ *Exclusive Farming Guides* 📚
   Download premium farming guides

4️⃣ *Fertilizer Calculator* 🧮
   Calculate fertilizer quantity & budget plan

5️⃣ *Find Shop* 📍
   Locate nearest UCF retailers

6️⃣ *Product Q&A* 💬
   Ask about UCF products

7️⃣ *Main Menu* 🏠
   Return to full menu

Just reply with the number or describe what you need!"""

PREMIUM_PROMPT_MESSAGE = """🔒 *Premium Feature*

This service is exclusively for UCF customers.

To unlock premium features:
📸 Upload a clear photo of your UCF product purchase receipt

*Premium Benefits:*
✅ Crop disease diagnosis
✅ Soil results analysis
✅ Exclusive farming guides (PDFs)
✅ Priority expert support
✅ {days} days access
✅ Fertilizer Calculator

Ready to verify? Send your receipt now! 📄

 _Type "menu" to go back to menu_"""

PREMIUM_FEATURES_LIST = """*Premium Features:*
1️⃣ Crop disease diagnosis and Soil results analysis
2️⃣ Fertilizer Calculator
3️⃣ Exclusive Farming Guides
4️⃣ Priority support"""

ALREADY_PREMIUM_MESSAGE = """✅ You already have premium access!

🎉 Valid until: {expiry}

""" + PREMIUM_FEATURES_LIST + """

_Reply with 1-4 to use Premium Features, or type "menu" to go back to main menu._"""

PREMIUM_ACCESS_HELP_MESSAGE = PREMIUM_FEATURES_LIST + """

_Reply with 1-4 to use Premium Features, or type "menu" to go back to main menu._"""

# ============================================================
# FEATURE PROMPTS
# ============================================================

DIAGNOSIS_PROMPT_MESSAGE = """🔬 *Crop Diagnosis Service*

Please send a clear photo of:
📸 Affected crop/plant leaves
📸 Soil Results Analysis

I'll analyze it and provide treatment recommendations! 🌿

""" + BACK_TO_MENU

CALCULATOR_PROMPT_MESSAGE = """🧮 *UCF Fertilizer Calculator*

Welcome to the UCF Fertilizer Calculator!

Which plant are you planning to grow?

Example: "Maize", "Cotton", "Cabbage"

""" + BACK_TO_MENU

LOCATION_PROMPT_MESSAGE = """📍 *Find Nearest UCF Dealer*

Please share your live location so I can find the nearest shops.

_In WhatsApp: Tap 📎 → Location → Send your current location_

""" + BACK_TO_MENU

LOCATION_SEARCHING_MESSAGE = "🔍 Finding nearest UCF retailers..."
LOCATION_FOLLOWUP_MESSAGE = '_Need anything else? Type "menu" to see all options._'

PRODUCT_QUESTION_HINT = '_Type your product question or "menu" to go back_'

PRODUCT_QA_PROMPT_MESSAGE = """💬 *Product Q&A*

Ask me anything about UCF products!

Examples:
• "Tell me about cabbage farming"
• "Which fertilizer is best for beans farming"
• "Tell me about Pfumvudza"
"""

GUIDES_MESSAGE = """📚 *Exclusive Farming Guides*

Choose a guide to download:

{guides}

Reply with the number (1-{count}) to get your PDF!

""" + BACK_TO_MENU

NO_GUIDES_MESSAGE = "📚 No farming guides are available right now. Please check back soon.\n\n" + BACK_TO_MENU

INVALID_GUIDE_MESSAGE = "❌ Invalid selection. Please choose a number between 1 and {count}.\n\n" + BACK_TO_MENU

GUIDE_DETAIL_MESSAGE = """📚 *{title}*

📄 *Description:* {description}

📊 *Details:*
• Pages: {pages}
• Size: {size}
• Category: {category}

🔗 *Download Link:* {url}

💡 _This is a premium exclusive guide. Save the link for offline access._

""" + BACK_TO_MENU

# ============================================================
# EXPERT HELP
# ============================================================

EXPERT_ASK_NAME_MESSAGE = """To connect you with our expert, I need some information.

What's your name?

""" + BACK_TO_MENU

EXPERT_ASK_EMAIL_MESSAGE = "Thanks! What's your email address?\n\n" + BACK_TO_MENU

INVALID_EMAIL_MESSAGE = "❌ That doesn't look like an email address. Please try again.\n\n" + BACK_TO_MENU

EXPERT_ASK_ISSUE_MESSAGE = """👨‍🌾 *Expert Help Service*

Please describe your farming issue or question.

Your question will be forwarded directly to our agronomist's WhatsApp for personalized assistance.

""" + BACK_TO_MENU

EXPERT_FORWARD_MESSAGE = """🌾 *[UCF Agri-Bot - Expert Request]*

👤 *Farmer:* {name}
📞 *Phone:* {phone}
📧 *Email:* {email}

*Issue:*
{issue}"""

EXPERT_AFTER_EMAIL_MESSAGE = """Great! Now please describe your farming issue or question.

Your question will be forwarded directly to our agronomist's WhatsApp for personalized assistance."""

EXPERT_SENT_MESSAGE = """✅ *Request Sent!* 👨‍🌾

I've forwarded your question to our agronomist.

*Your Question:*
"{issue}"

You'll receive a response directly on WhatsApp soon!

_Type "menu" to continue._"""

EXPERT_RECORDED_MESSAGE = """✅ *Request Recorded!*

Your query has been recorded and will be forwarded to our agronomist.

*Your Details Recorded:*
📞 Phone: {phone}
📧 Email: {email}

_Type "menu" to continue._"""

# ============================================================
# CALCULATOR
# ============================================================

CALCULATOR_INVALID_PLANT_MESSAGE = """❌ Please enter a valid crop name.

Example: "Maize", "Cotton", "Cabbage"

""" + BACK_TO_MENU

CALCULATOR_ASK_YIELD_MESSAGE = """✅ Plant selected: *{plant}*

📊 *Step 2: Target Yield*

How many tonnes of {plant} are you looking to get?

Example: "3" for 3 tonnes

""" + BACK_TO_MENU

CALCULATOR_INVALID_YIELD_MESSAGE = """❌ Please enter a valid yield amount.

Example: "3.5" for 3.5 tonnes

""" + BACK_TO_MENU

CALCULATOR_THANKS = '_Thank you for using the UCF Fertilizer Calculator!_\n\nType "menu" to return to main menu.'

CALCULATOR_LOW_RESULT = """📊 *UCF Fertilizer Calculator Results*

🌾 *Crop:* {plant}
🎯 *Target Yield:* {target} tonnes

✅ *Recommended Rate:* 150kg/ha

💡 This application rate is suitable for your target yield.

""" + CALCULATOR_THANKS

CALCULATOR_MEDIUM_RESULT = """📊 *UCF Fertilizer Calculator Results*

🌾 *Crop:* {plant}
🎯 *Target Yield:* {target} tonnes

✅ *Recommended Rate:* 300kg/ha

💡 *Pro Tip:* We recommend soil analysis to maximise performance of UCF fertilizer for your target yield.

""" + CALCULATOR_THANKS

CALCULATOR_SOIL_QUESTION = """📊 *UCF Fertilizer Calculator*

🌾 *Crop:* {plant}
🎯 *Target Yield:* {target} tonnes

🧪 *Soil Analysis Check*

Did you do a soil analysis?

1️⃣ Yes - I have soil analysis results
2️⃣ No - I haven't done soil analysis

Reply with 1 or 2.

""" + BACK_TO_MENU

CALCULATOR_SOIL_YES = """✅ *Great!*

Please share your soil analysis results so our agronomist can give you personalized recommendations based on your soil.

📸 You can send:
• Photo of lab report
• Soil analysis document

Our expert will review and provide tailored fertilizer recommendations.

""" + CALCULATOR_THANKS

CALCULATOR_SOIL_NO = """💡 *Soil Analysis Recommended*

For your target yield of {target} tonnes, we highly recommend soil analysis to maximise performance of UCF fertilizer.

👨‍🌾 *Next Steps:*
Contact our expert agronomist for soil sampling and analysis services.

This will help us provide you with the most accurate fertilizer recommendations for optimal results.

_Thank you for using the UCF Fertilizer Calculator!_

Type "menu" to return to main menu or "4" to contact our expert."""

CALCULATOR_SOIL_INVALID = """❌ Please reply with:

1️⃣ for Yes
2️⃣ for No

""" + BACK_TO_MENU

# ============================================================
# IMAGES
# ============================================================

NOT_AN_IMAGE_MESSAGE = "Please send an image file (JPG, PNG, etc.) 📸\n\n" + BACK_TO_MENU

IMAGE_PURPOSE_MESSAGE = """I received your image. What would you like me to do with it?

1️⃣ Diagnose crop disease (Premium)
2️⃣ Verify receipt for premium access
3️⃣ Soil results analysis (Premium)

""" + BACK_TO_MENU

IMAGE_PURPOSE_INVALID = "Please choose 1, 2 or 3.\n\n" + BACK_TO_MENU

IMAGE_EXPIRED_MESSAGE = "Image expired. Please send the image again. 📸\n\n" + BACK_TO_MENU

IMAGE_DOWNLOAD_FAILED = "Sorry, I had trouble processing that image. Please try again with a clear photo. 📸"

DIAGNOSIS_WORKING_MESSAGE = "🔬 Analyzing your crop image... This may take a moment."
SOIL_WORKING_MESSAGE = "🧪 Analyzing your soil results image... This may take a moment."

DIAGNOSIS_FAILED_MESSAGE = """⚠️ I had trouble analyzing that image.

Please send:
✓ Clear photo of affected leaves
✓ Good lighting
✓ Close-up of symptoms

Try again or type "expert" for human assistance. 👨‍🌾"""

SOIL_FAILED_MESSAGE = """⚠️ I had trouble analyzing that soil results image.

Please send:
✓ Clear photo of the soil or lab report
✓ Good lighting

Try again or type "expert" for human assistance. 👨‍🌾"""

# ============================================================
# RECEIPTS
# ============================================================

RECEIPT_WORKING_MESSAGE = "📄 Analyzing your receipt... Please wait a moment."

RECEIPT_APPROVED_MESSAGE = """✅ *Receipt Verified Successfully!* 🎉

*Invoice Details:*
📋 Invoice #: {invoice_number}
🏪 Retailer: {retailer}
📅 Date: {date}
💰 Amount: {currency} {amount}

*UCF Products Found:*
{products}

🎉 *Congratulations!* You now have premium access.

*Valid Until:* {expiry}

*Unlocked Features:*
🔬 Crop disease diagnosis
🌱 Soil results analysis
📄 Exclusive farming guides
👨‍🌾 Priority expert support

_Type "menu" to start using premium features!_ 🌾"""

RECEIPT_INVALID_MESSAGE = """⚠️ *Invoice Validation Failed*

*Issues Found:*
{errors}

Please upload a valid recent receipt. 📅"""

RECEIPT_NO_BRAND_MESSAGE = """⚠️ *No UCF Products Found*

This receipt does not contain UCF products.

*Please ensure:*
✓ Receipt shows UCF branded products
✓ Image is clear and readable
✓ Receipt is from an authorized retailer

Try again with a valid UCF purchase receipt. 📸"""

RECEIPT_QR_REQUIRED_MESSAGE = """❌ *QR Code Required*

This receipt does not have a valid ZIMRA QR code.

*Requirements:*
✓ Receipt must have ZIMRA QR code
✓ QR code must be clearly visible
✓ Receipt must be from authorized retailer

Please upload a valid fiscal receipt with QR code. 📸"""

RECEIPT_REPLAYED_MESSAGE = """⚠️ *Receipt Already Used*

This receipt has already been verified.

Each receipt can only be used once. Please upload a different receipt. 🔒"""

RECEIPT_ON_HOLD_MESSAGE = """⏳ *Receipt Received*

We couldn't confirm this receipt with ZIMRA automatically, so a reviewer will check it shortly.

You'll be notified once it's approved. 🙏

_Type "menu" to go back to main menu_"""

RECEIPT_ERROR_MESSAGE = """⚠️ *Verification Error*

I had trouble reading your receipt. Please ensure:

✓ Image is clear and well-lit
✓ All text is visible
✓ Receipt is not blurry

Try taking another photo and send it again. 📸"""

RECEIPT_REVIEWER_CAPTION = """🧾 *New Receipt Submission*

👤 Name: {name}
📱 Phone: {phone}
🆔 ID: {identity}"""

# ============================================================
# GENERAL
# ============================================================

FALLBACK_MESSAGE = 'I didn\'t quite understand that. Type "menu" to see what I can help you with! 🌾'

COLLABORATOR_APOLOGY_MESSAGE = """😔 Sorry, that service is not responding right now.

Please try again in a moment, or type "menu" to see all options."""

GENERIC_ERROR_MESSAGE = 'Sorry, I encountered an error. Please try again or type "menu" to return to main menu. 🙏'
